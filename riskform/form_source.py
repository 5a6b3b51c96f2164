"""Load form configurations from local schema files or a GitHub repository."""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from riskform.errors import FormSourceError, SchemaError
from riskform.schema import FormConfig, load_form_config
from riskform.settings import DEFAULT_GITHUB_PATH, GitHubSettings, Settings, load_settings

logger = logging.getLogger(__name__)

FORM_SCHEMA_FILENAME = "form_schema.json"


def _schemas_root(root: Optional[Path], settings: Optional[Settings]) -> Path:
    if root is not None:
        return Path(root)
    return (settings or load_settings()).schemas_root


def discover_local_forms(
    root: Optional[Path] = None, *, settings: Optional[Settings] = None
) -> Dict[str, Path]:
    """Return a mapping of ``form_key -> path`` for ``<root>/<key>/form_schema.json``.

    Without ``root`` the ``schemas_root`` setting is used.
    """

    forms: Dict[str, Path] = {}
    root = _schemas_root(root, settings)
    if root.exists():
        for entry in sorted(root.iterdir()):
            if not entry.is_dir():
                continue
            schema_path = entry / FORM_SCHEMA_FILENAME
            if schema_path.exists():
                forms[entry.name] = schema_path
    return forms


def load_local_form(path: Path) -> FormConfig:
    """Read and load the form configuration stored at ``path``."""

    with Path(path).open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return load_form_config(payload)


def load_local_forms(
    root: Optional[Path] = None, *, settings: Optional[Settings] = None
) -> Dict[str, FormConfig]:
    """Load every form found under ``root``, skipping unreadable files."""

    forms: Dict[str, FormConfig] = {}
    for form_key, path in discover_local_forms(root, settings=settings).items():
        try:
            forms[form_key] = load_local_form(path)
        except (OSError, json.JSONDecodeError, SchemaError):
            logger.exception("Skipping invalid form schema %s", path)
    return forms


def resolve_form_path(base_path: str, form_key: str) -> str:
    """Return the repository path for ``form_key`` using ``base_path`` as template."""

    if "{form_key}" in base_path:
        return base_path.format(form_key=form_key)
    if base_path.endswith(".json"):
        return base_path
    return f"{base_path.rstrip('/')}/{form_key}/{FORM_SCHEMA_FILENAME}"


@dataclass
class GitHubFormSource:
    """Read form configurations through GitHub's Contents API."""

    repo: str
    path: str = DEFAULT_GITHUB_PATH
    branch: str = "main"
    token: Optional[str] = None
    api_url: str = "https://api.github.com"
    timeout: float = 10

    @classmethod
    def from_settings(cls, settings: GitHubSettings) -> "GitHubFormSource":
        return cls(
            repo=settings.repo,
            path=settings.path,
            branch=settings.branch,
            token=settings.token,
            api_url=settings.api_url,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _url(self, form_key: str) -> str:
        path = resolve_form_path(self.path, form_key)
        return f"{self.api_url.rstrip('/')}/repos/{self.repo}/contents/{path}"

    def read_payload(self, form_key: str) -> Dict[str, Any]:
        """Download and decode the JSON schema for ``form_key``."""

        response = requests.get(
            self._url(form_key),
            headers=self._headers(),
            params={"ref": self.branch},
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        encoding = payload.get("encoding", "base64")
        if encoding != "base64":
            raise ValueError(f"Unsupported encoding: {encoding}")

        decoded = base64.b64decode(payload.get("content", "")).decode("utf-8")
        return json.loads(decoded)

    def read_config(self, form_key: str) -> FormConfig:
        """Return the :class:`FormConfig` stored for ``form_key``."""

        try:
            payload = self.read_payload(form_key)
        except requests.RequestException as exc:
            raise FormSourceError(f"Unable to fetch form {form_key!r} from GitHub") from exc
        except ValueError as exc:
            raise FormSourceError(f"Form {form_key!r} on GitHub is not valid JSON") from exc
        return load_form_config(payload)


__all__ = [
    "FORM_SCHEMA_FILENAME",
    "GitHubFormSource",
    "discover_local_forms",
    "load_local_form",
    "load_local_forms",
    "resolve_form_path",
]
