"""Submit a completed questionnaire and build export payloads."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from riskform.answers import normalise_values
from riskform.conditions import get_visible_questions_for_config
from riskform.schema import FormConfig
from riskform.scoring import RiskScore, calculate_risk_score
from riskform.settings import Settings
from riskform.storage import FormStorage
from riskform.validation import validate_form

logger = logging.getLogger(__name__)

SubmitCallback = Callable[[Dict[str, Any], RiskScore], None]

SUCCESS_MESSAGE = "Form submitted successfully!"
VALIDATION_FAILED_MESSAGE = "Please fix validation errors before submitting"
SUBMIT_FAILED_MESSAGE = "Failed to submit form"


def _level_basis(level_basis: Optional[str], settings: Optional[Settings]) -> Optional[str]:
    if level_basis:
        return level_basis
    return settings.level_basis if settings is not None else None


@dataclass
class SubmissionResult:
    """Outcome of :func:`submit_form`."""

    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    risk_score: Optional[RiskScore] = None
    errors: Dict[str, str] = field(default_factory=dict)


def submit_form(
    config: FormConfig,
    values: Mapping[str, Any],
    on_submit: Optional[SubmitCallback] = None,
    *,
    storage: Optional[FormStorage] = None,
    level_basis: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> SubmissionResult:
    """Validate, score and hand ``values`` to ``on_submit``.

    The persisted state of the form is cleared only after the callback
    succeeds. Exceptions raised by the callback are reported in the result;
    answers of the wrong shape raise :class:`~riskform.errors.AnswerShapeError`.
    An explicit ``level_basis`` wins over ``settings.level_basis``.
    """

    answers = normalise_values(config, values)
    errors = validate_form(get_visible_questions_for_config(config, answers), answers)
    if errors:
        return SubmissionResult(
            success=False,
            message=VALIDATION_FAILED_MESSAGE,
            errors=errors,
        )

    basis = _level_basis(level_basis, settings)
    score = calculate_risk_score(config, answers, level_basis=basis)
    try:
        if on_submit is not None:
            on_submit(answers, score)
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Submission callback failed for form %s", config.id)
        return SubmissionResult(
            success=False,
            message=str(exc) or SUBMIT_FAILED_MESSAGE,
            data=answers,
            risk_score=score,
        )

    if storage is not None:
        storage.clear_form_state(config.id)

    return SubmissionResult(
        success=True,
        message=SUCCESS_MESSAGE,
        data=answers,
        risk_score=score,
    )


def build_export_payload(
    config: FormConfig,
    values: Mapping[str, Any],
    *,
    level_basis: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """Return the answers and their risk score in a download-friendly shape."""

    basis = _level_basis(level_basis, settings)
    score = calculate_risk_score(config, values, level_basis=basis)
    return {
        "formId": config.id,
        "formTitle": config.title,
        "answers": dict(values),
        "riskScore": score.as_dict(),
        "exportedAt": datetime.now(timezone.utc).isoformat(),
    }


__all__ = [
    "SubmissionResult",
    "build_export_payload",
    "submit_form",
]
