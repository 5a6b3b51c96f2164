"""Tests for loading form configurations."""

from __future__ import annotations

from typing import Any, Dict

import pytest

from riskform.errors import SchemaError
from riskform.schema import (
    DEFAULT_MAX_RISK_SCORE,
    Option,
    get_validator,
    load_form_config,
    register_validator,
    unregister_validator,
)


def _payload() -> Dict[str, Any]:
    """Return a small but complete form configuration payload."""

    return {
        "id": "vendor",
        "title": "Vendor assessment",
        "sections": [
            {
                "id": "general",
                "title": "General",
                "questions": [
                    {"id": "name", "type": "text", "label": "Vendor name", "required": True},
                    {
                        "id": "handles_pii",
                        "type": "select",
                        "label": "Handles personal data?",
                        "riskWeight": 10,
                        "options": ["yes", {"label": "No", "value": "no", "riskValue": 0}],
                    },
                ],
            },
            {
                "id": "details",
                "title": "Details",
                "questions": [
                    {
                        "id": "records",
                        "type": "number",
                        "label": "Records held",
                        "min": 0,
                        "conditional": {"questionId": "handles_pii", "answer": "yes"},
                    }
                ],
            },
        ],
    }


def test_load_form_config_normalises_options() -> None:
    config = load_form_config(_payload())

    question = config.get_question("handles_pii")
    assert question is not None
    assert question.options == (
        Option(label="yes", value="yes"),
        Option(label="No", value="no", risk_value=0),
    )
    assert question.has_risk_values


def test_load_form_config_defaults() -> None:
    config = load_form_config(_payload())

    assert config.max_risk_score == DEFAULT_MAX_RISK_SCORE
    assert [question.id for question in config.iter_questions()] == [
        "name",
        "handles_pii",
        "records",
    ]
    name = config.get_question("name")
    assert name.risk_weight == 0
    assert name.required is True
    records = config.get_question("records")
    assert records.conditional.operator == "equals"
    assert records.conditional.question_id == "handles_pii"


def test_explicit_zero_max_risk_score_is_kept() -> None:
    payload = _payload()
    payload["maxRiskScore"] = 0

    assert load_form_config(payload).max_risk_score == 0


def test_unknown_operator_is_preserved() -> None:
    payload = _payload()
    payload["sections"][1]["questions"][0]["conditional"]["operator"] = "between"

    config = load_form_config(payload)

    assert config.get_question("records").conditional.operator == "between"


@pytest.mark.parametrize(
    "mutate,fragment",
    [
        (lambda p: p["sections"].append({"id": "general", "questions": []}), "duplicate section"),
        (
            lambda p: p["sections"][1]["questions"].append({"id": "name", "type": "text"}),
            "duplicate question",
        ),
        (
            lambda p: p["sections"][0]["questions"][1]["options"].append("yes"),
            "duplicate option",
        ),
        (lambda p: p["sections"][0]["questions"][1].update(riskWeight=-1), "riskWeight"),
        (lambda p: p.update(maxRiskScore=-5), "maxRiskScore"),
        (lambda p: p["sections"][0]["questions"][0].update(type="slider"), "unsupported type"),
        (lambda p: p["sections"][0]["questions"][0].update(pattern="[a-"), "invalid pattern"),
        (lambda p: p.pop("id"), "missing 'id'"),
    ],
)
def test_load_form_config_rejects_malformed_payloads(mutate, fragment) -> None:
    payload = _payload()
    mutate(payload)

    with pytest.raises(SchemaError, match=fragment):
        load_form_config(payload)


def test_registered_validator_is_resolved_by_name() -> None:
    @register_validator("no_test_vendors")
    def _no_test(value: Any) -> Any:
        return "test" not in str(value).lower() or "Test vendors are not allowed"

    try:
        payload = _payload()
        payload["sections"][0]["questions"][0]["validation"] = [
            {"type": "custom", "message": "Invalid vendor", "validator": "no_test_vendors"}
        ]
        config = load_form_config(payload)
        rule = config.get_question("name").validation[0]
        assert rule.validate is get_validator("no_test_vendors")
        assert rule.name == "no_test_vendors"
    finally:
        unregister_validator("no_test_vendors")


def test_unknown_validator_is_a_schema_error() -> None:
    payload = _payload()
    payload["sections"][0]["questions"][0]["validation"] = [
        {"type": "custom", "message": "nope", "validator": "does-not-exist"}
    ]

    with pytest.raises(SchemaError, match="unknown validator"):
        load_form_config(payload)
