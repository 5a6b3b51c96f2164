"""Tests for submitting questionnaires and exporting answers."""

from __future__ import annotations

from riskform.schema import load_form_config
from riskform.settings import settings_from_mapping
from riskform.storage import FormStorage, InMemoryStore
from riskform.submission import build_export_payload, submit_form


def _config():
    return load_form_config(
        {
            "id": "vendor",
            "title": "Vendor assessment",
            "sections": [
                {
                    "id": "general",
                    "title": "General",
                    "questions": [
                        {"id": "name", "type": "text", "label": "Vendor name", "required": True},
                        {
                            "id": "stores_pii",
                            "type": "select",
                            "label": "Stores PII?",
                            "riskWeight": 10,
                            "options": [
                                {"label": "Yes", "value": "yes", "riskValue": 10},
                                {"label": "No", "value": "no", "riskValue": 0},
                            ],
                        },
                        {
                            "id": "dpa",
                            "type": "text",
                            "label": "DPA reference",
                            "required": True,
                            "conditional": {"questionId": "stores_pii", "answer": "yes"},
                        },
                    ],
                }
            ],
        }
    )


def test_submit_reports_validation_errors_without_calling_back() -> None:
    calls = []

    result = submit_form(_config(), {"stores_pii": "yes"}, lambda values, score: calls.append(values))

    assert result.success is False
    assert result.message == "Please fix validation errors before submitting"
    assert result.errors == {"name": "Vendor name is required", "dpa": "DPA reference is required"}
    assert calls == []


def test_submit_passes_values_and_score_and_clears_state() -> None:
    storage = FormStorage(InMemoryStore())
    values = {"name": "Acme", "stores_pii": "no"}
    storage.save_form_state("vendor", values)
    received = {}

    def on_submit(answers, score):
        received["answers"] = answers
        received["score"] = score

    result = submit_form(_config(), values, on_submit, storage=storage)

    assert result.success is True
    assert result.message == "Form submitted successfully!"
    assert received["answers"] == values
    assert received["score"].level == "Low"
    assert result.risk_score.total_score == 0
    assert storage.load_form_state("vendor") is None


def test_callback_failure_keeps_saved_state() -> None:
    storage = FormStorage(InMemoryStore())
    values = {"name": "Acme", "stores_pii": "yes", "dpa": "DPA-1"}
    storage.save_form_state("vendor", values)

    def on_submit(answers, score):
        raise RuntimeError("Transport unavailable")

    result = submit_form(_config(), values, on_submit, storage=storage)

    assert result.success is False
    assert result.message == "Transport unavailable"
    assert result.risk_score.level == "Critical"
    assert storage.load_form_state("vendor")["values"] == values


def test_submit_without_callback_succeeds() -> None:
    result = submit_form(_config(), {"name": "Acme"})

    assert result.success is True
    assert result.risk_score.total_score == 0


def test_build_export_payload() -> None:
    payload = build_export_payload(_config(), {"name": "Acme", "stores_pii": "yes"})

    assert payload["formId"] == "vendor"
    assert payload["formTitle"] == "Vendor assessment"
    assert payload["answers"] == {"name": "Acme", "stores_pii": "yes"}
    assert payload["riskScore"]["totalScore"] == 100
    assert payload["riskScore"]["level"] == "Critical"
    assert payload["exportedAt"]


def _small_scale_config():
    return load_form_config(
        {
            "id": "pii",
            "title": "PII",
            "maxRiskScore": 10,
            "sections": [
                {
                    "id": "data",
                    "title": "Data",
                    "questions": [
                        {
                            "id": "stores_pii",
                            "type": "select",
                            "label": "Stores PII?",
                            "riskWeight": 10,
                            "options": [
                                {"label": "Yes", "value": "yes", "riskValue": 10},
                                {"label": "No", "value": "no", "riskValue": 0},
                            ],
                        }
                    ],
                }
            ],
        }
    )


def test_level_basis_setting_changes_submitted_level() -> None:
    config = _small_scale_config()
    values = {"stores_pii": "yes"}

    default = submit_form(config, values, settings=settings_from_mapping({}))
    graded = submit_form(
        config, values, settings=settings_from_mapping({"level_basis": "percentage"})
    )

    assert default.risk_score.total_score == 10
    assert default.risk_score.level == "Low"
    assert graded.risk_score.level == "Critical"


def test_explicit_level_basis_overrides_settings() -> None:
    result = submit_form(
        _small_scale_config(),
        {"stores_pii": "yes"},
        level_basis="score",
        settings=settings_from_mapping({"level_basis": "percentage"}),
    )

    assert result.risk_score.level == "Low"


def test_export_payload_uses_level_basis_setting() -> None:
    payload = build_export_payload(
        _small_scale_config(),
        {"stores_pii": "yes"},
        settings=settings_from_mapping({"level_basis": "percentage"}),
    )

    assert payload["riskScore"]["level"] == "Critical"
