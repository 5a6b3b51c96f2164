"""Engine settings sourced from Streamlit secrets."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import streamlit as st

SECRETS_SECTION = "risk_form"
DEFAULT_NAMESPACE = "risk-form"
DEFAULT_AUTOSAVE_INTERVAL_MS = 30_000
DEFAULT_SCHEMAS_ROOT = Path("form_schemas")
DEFAULT_GITHUB_PATH = "form_schemas/{form_key}/form_schema.json"
LEVEL_BASIS_SCORE = "score"
LEVEL_BASIS_PERCENTAGE = "percentage"
LEVEL_BASES = (LEVEL_BASIS_SCORE, LEVEL_BASIS_PERCENTAGE)


@dataclass(frozen=True)
class GitHubSettings:
    """Where to fetch form configurations from on GitHub."""

    repo: str
    path: str = DEFAULT_GITHUB_PATH
    branch: str = "main"
    token: Optional[str] = None
    api_url: str = "https://api.github.com"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the questionnaire engine."""

    namespace: str = DEFAULT_NAMESPACE
    autosave_interval_ms: int = DEFAULT_AUTOSAVE_INTERVAL_MS
    level_basis: str = LEVEL_BASIS_SCORE
    schemas_root: Path = field(default=DEFAULT_SCHEMAS_ROOT)
    github: Optional[GitHubSettings] = None


def _secrets_dict(name: str) -> Dict[str, Any]:
    """Return a mapping stored under ``name`` in Streamlit secrets."""

    try:
        value = st.secrets.get(name, {})  # type: ignore[arg-type]
    except FileNotFoundError:
        # No secrets.toml outside a configured deployment.
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _github_settings(secrets: Mapping[str, Any]) -> Optional[GitHubSettings]:
    """Return GitHub settings when a repository is configured."""

    github = secrets.get("github")
    if not isinstance(github, Mapping):
        return None

    repo = _clean_text(github.get("repo"))
    if not repo:
        return None

    return GitHubSettings(
        repo=repo,
        path=_clean_text(github.get("path")) or DEFAULT_GITHUB_PATH,
        branch=_clean_text(github.get("branch")) or "main",
        token=_clean_text(github.get("token")) or None,
        api_url=_clean_text(github.get("api_url")) or "https://api.github.com",
    )


def settings_from_mapping(secrets: Mapping[str, Any]) -> Settings:
    """Build :class:`Settings` from a secrets-style mapping, applying defaults."""

    namespace = _clean_text(secrets.get("namespace")) or DEFAULT_NAMESPACE

    interval = secrets.get("autosave_interval_ms", DEFAULT_AUTOSAVE_INTERVAL_MS)
    try:
        autosave_interval_ms = int(interval)
    except (TypeError, ValueError):
        autosave_interval_ms = DEFAULT_AUTOSAVE_INTERVAL_MS
    if autosave_interval_ms <= 0:
        autosave_interval_ms = DEFAULT_AUTOSAVE_INTERVAL_MS

    level_basis = _clean_text(secrets.get("level_basis")).lower() or LEVEL_BASIS_SCORE
    if level_basis not in LEVEL_BASES:
        level_basis = LEVEL_BASIS_SCORE

    schemas_root = _clean_text(secrets.get("schemas_root"))

    return Settings(
        namespace=namespace,
        autosave_interval_ms=autosave_interval_ms,
        level_basis=level_basis,
        schemas_root=Path(schemas_root) if schemas_root else DEFAULT_SCHEMAS_ROOT,
        github=_github_settings(secrets),
    )


def load_settings() -> Settings:
    """Read the ``[risk_form]`` secrets table into :class:`Settings`."""

    return settings_from_mapping(_secrets_dict(SECRETS_SECTION))


__all__ = [
    "DEFAULT_AUTOSAVE_INTERVAL_MS",
    "DEFAULT_NAMESPACE",
    "GitHubSettings",
    "LEVEL_BASES",
    "LEVEL_BASIS_PERCENTAGE",
    "LEVEL_BASIS_SCORE",
    "Settings",
    "load_settings",
    "settings_from_mapping",
]
