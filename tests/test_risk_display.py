from __future__ import annotations

import importlib

from riskform.scoring import RiskScore, SectionScore


def _score(level: str = "Critical") -> RiskScore:
    return RiskScore(
        total_score=80,
        max_score=100,
        percentage=80,
        level=level,
        breakdown={
            "data": SectionScore(score=7.5, max_score=10, percentage=75.0),
            "ops": SectionScore(score=0, max_score=0, percentage=0),
        },
    )


def test_level_lookups_have_fallbacks() -> None:
    module = importlib.import_module("riskform.risk_display")

    assert module.risk_level_color("Low") == "#4caf50"
    assert module.risk_level_bg_color("Critical") == "#fce4ec"
    assert module.risk_level_text("Medium") == "⚠ Medium Risk"
    assert module.risk_level_color("Severe") == "#666"
    assert module.risk_level_bg_color("Severe") == "#f5f5f5"
    assert module.risk_level_text("Severe") == "Unknown"


def test_risk_score_to_markdown_adds_colour_icon_and_sections() -> None:
    module = importlib.import_module("riskform.risk_display")
    config = importlib.import_module("riskform.schema").load_form_config(
        {"id": "f", "title": "F", "sections": [{"id": "data", "title": "Data handling"}]}
    )

    text = module.risk_score_to_markdown(_score(), config)

    lines = text.splitlines()
    assert lines[0] == "🔴 ✗ Critical Risk · 80/100 (80%)"
    assert lines[1] == "- Data handling: 7.5/10 (75%)"
    assert lines[2] == "- ops: 0/0 (0%)"


def test_badge_html_uses_level_class() -> None:
    module = importlib.import_module("riskform.risk_display")

    html = module.risk_score_to_badge_html(_score("High"))

    assert "app-risk-badge--high" in html
    assert "#f44336" in html
    assert "80/100" in html
    assert "app-risk-badge--unknown" in module.risk_score_to_badge_html(_score("Odd"))


def test_breakdown_to_frame_has_one_row_per_section() -> None:
    module = importlib.import_module("riskform.risk_display")

    frame = module.breakdown_to_frame(_score())

    assert list(frame.columns) == ["Section", "Score", "Max score", "Percentage"]
    assert frame["Section"].tolist() == ["data", "ops"]
    assert frame.loc[0, "Score"] == 7.5
