"""Helpers for presenting risk scores consistently."""

from __future__ import annotations

from html import escape as html_escape
from typing import Dict, List, Optional, Tuple

import pandas as pd

from riskform.schema import FormConfig
from riskform.scoring import RiskScore

RISK_LEVEL_EMOJIS: Dict[str, str] = {
    "Low": "🟢",
    "Medium": "🟡",
    "High": "🟠",
    "Critical": "🔴",
}

RISK_LEVEL_COLORS: Dict[str, str] = {
    "Low": "#4caf50",
    "Medium": "#ff9800",
    "High": "#f44336",
    "Critical": "#b71c1c",
}

RISK_LEVEL_BG_COLORS: Dict[str, str] = {
    "Low": "#e8f5e9",
    "Medium": "#fff3e0",
    "High": "#ffebee",
    "Critical": "#fce4ec",
}

RISK_LEVEL_TEXT: Dict[str, str] = {
    "Low": "✓ Low Risk",
    "Medium": "⚠ Medium Risk",
    "High": "⚠ High Risk",
    "Critical": "✗ Critical Risk",
}

BREAKDOWN_COLUMNS = ("Section", "Score", "Max score", "Percentage")


def risk_level_color(level: str) -> str:
    return RISK_LEVEL_COLORS.get(level, "#666")


def risk_level_bg_color(level: str) -> str:
    return RISK_LEVEL_BG_COLORS.get(level, "#f5f5f5")


def risk_level_text(level: str) -> str:
    return RISK_LEVEL_TEXT.get(level, "Unknown")


def _section_titles(config: Optional[FormConfig]) -> Dict[str, str]:
    if config is None:
        return {}
    return {section.id: section.title for section in config.sections}


def _format_score(value: float) -> str:
    """Return ``value`` with at most one decimal place."""

    rounded = round(value, 1)
    return str(int(rounded)) if rounded == int(rounded) else str(rounded)


def _breakdown_rows(score: RiskScore, config: Optional[FormConfig]) -> List[Tuple[str, float, float, float]]:
    titles = _section_titles(config)
    return [
        (titles.get(section_id, section_id), entry.score, entry.max_score, entry.percentage)
        for section_id, entry in score.breakdown.items()
    ]


def risk_score_to_markdown(score: RiskScore, config: Optional[FormConfig] = None) -> str:
    """Return a newline-separated summary of ``score`` with a colour icon."""

    emoji = RISK_LEVEL_EMOJIS.get(score.level, "⚪")
    lines = [
        f"{emoji} {risk_level_text(score.level)} · "
        f"{score.total_score}/{_format_score(score.max_score)} ({score.percentage}%)"
    ]
    for title, section_score, section_max, percentage in _breakdown_rows(score, config):
        lines.append(
            f"- {title}: {_format_score(section_score)}/{_format_score(section_max)} "
            f"({_format_score(percentage)}%)"
        )
    return "\n".join(lines)


def risk_score_to_badge_html(score: RiskScore) -> str:
    """Return HTML markup representing the overall level as a styled badge."""

    if score.level in RISK_LEVEL_TEXT:
        css_class = f"app-risk-badge--{score.level.lower()}"
    else:
        css_class = "app-risk-badge--unknown"
    return (
        "<span class='app-risk-badge {css}' style='color:{color};background:{background}'>"
        "<span class='app-risk-badge__level'>{level}</span>"
        "<span class='app-risk-badge__score'>{total}/{maximum}</span>"
        "</span>"
    ).format(
        css=css_class,
        color=risk_level_color(score.level),
        background=risk_level_bg_color(score.level),
        level=html_escape(risk_level_text(score.level)),
        total=score.total_score,
        maximum=_format_score(score.max_score),
    )


def breakdown_to_frame(score: RiskScore, config: Optional[FormConfig] = None) -> pd.DataFrame:
    """Return the per-section breakdown as a table, one row per section."""

    return pd.DataFrame(_breakdown_rows(score, config), columns=list(BREAKDOWN_COLUMNS))


__all__ = [
    "breakdown_to_frame",
    "risk_level_bg_color",
    "risk_level_color",
    "risk_level_text",
    "risk_score_to_badge_html",
    "risk_score_to_markdown",
]
