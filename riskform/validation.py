"""Field and form validation.

Validation never raises for bad answers: every check returns a single
human-readable message, or ``None`` when the answer is acceptable. Hidden
questions are never validated, and optional questions left empty skip all
type-specific and custom checks.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, Optional

from riskform.answers import FileMeta, file_list, is_blank
from riskform.conditions import is_field_visible
from riskform.schema import CUSTOM_RULE, FormConfig, Question

BYTES_PER_MB = 1024 * 1024


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def _parse_date(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime; naive values are taken as UTC."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _validate_text(question: Question, value: Any) -> Optional[str]:
    text = value if isinstance(value, str) else str(value)
    if question.min_length and len(text) < question.min_length:
        return f"Minimum length is {question.min_length} characters"
    if question.max_length and len(text) > question.max_length:
        return f"Maximum length is {question.max_length} characters"
    if question.pattern and re.search(question.pattern, text) is None:
        return f"Invalid format for {question.label}"
    return None


def _validate_number(question: Question, value: Any) -> Optional[str]:
    number = _parse_number(value)
    if number is None:
        return "Please enter a valid number"
    if question.min is not None and number < question.min:
        return f"Minimum value is {_format_number(question.min)}"
    if question.max is not None and number > question.max:
        return f"Maximum value is {_format_number(question.max)}"
    return None


def _validate_date(question: Question, value: Any) -> Optional[str]:
    parsed = _parse_date(value)
    if parsed is None:
        return "Please enter a valid date"
    # Unparseable bounds never reject an answer.
    if question.min_date:
        lower = _parse_date(question.min_date)
        if lower is not None and parsed < lower:
            return f"Date cannot be before {question.min_date}"
    if question.max_date:
        upper = _parse_date(question.max_date)
        if upper is not None and parsed > upper:
            return f"Date cannot be after {question.max_date}"
    return None


def _file_accepted(upload: FileMeta, accept: str) -> bool:
    accepted_types = [token.strip() for token in accept.split(",") if token.strip()]
    if not accepted_types:
        return True
    extension = "." + upload.name.rsplit(".", 1)[-1].lower()
    for token in accepted_types:
        if token.startswith("."):
            if extension == token.lower():
                return True
        elif token in upload.type:
            return True
    return False


def validate_file_upload(upload: Any, question: Question) -> Optional[str]:
    """Check one file reference against the question's ``accept`` and ``max_size``."""

    try:
        meta = FileMeta.from_value(upload)
    except TypeError:
        return "Invalid file upload"

    if question.accept and not _file_accepted(meta, question.accept):
        return f"File type not supported. Accepted types: {question.accept}"

    if question.max_size:
        if meta.size > question.max_size * BYTES_PER_MB:
            return f"File size exceeds {_format_number(question.max_size)}MB limit"

    return None


def _validate_file(question: Question, value: Any) -> Optional[str]:
    for upload in file_list(value):
        error = validate_file_upload(upload, question)
        if error:
            return error
    return None


def _validate_choice(question: Question, value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)) and not value and question.required:
        return f"Please select at least one option for {question.label}"
    return None


_TYPE_VALIDATORS = {
    "text": _validate_text,
    "number": _validate_number,
    "date": _validate_date,
    "file": _validate_file,
    "select": _validate_choice,
    "checkbox": _validate_choice,
}


def _run_custom_rules(question: Question, value: Any) -> Optional[str]:
    for rule in question.validation:
        if rule.type != CUSTOM_RULE or rule.validate is None:
            continue
        result = rule.validate(value)
        if result is not True:
            return result if isinstance(result, str) else rule.message
    return None


def validate_field(question: Question, value: Any, is_visible: bool) -> Optional[str]:
    """Return the first validation error for ``value``, or ``None``."""

    if not is_visible:
        return None

    if is_blank(value):
        if question.required:
            return f"{question.label} is required"
        return None

    type_validator = _TYPE_VALIDATORS.get(question.type)
    if type_validator is not None:
        error = type_validator(question, value)
        if error:
            return error

    return _run_custom_rules(question, value)


def validate_form(questions: Iterable[Question], values: Mapping[str, Any]) -> Dict[str, str]:
    """Return ``{question_id: message}`` for every visible question that fails."""

    errors: Dict[str, str] = {}
    for question in questions:
        visible = is_field_visible(question, values)
        error = validate_field(question, values.get(question.id), visible)
        if error:
            errors[question.id] = error
    return errors


def validate_config(config: FormConfig, values: Mapping[str, Any]) -> Dict[str, str]:
    """Validate ``values`` against every section of ``config``."""

    return validate_form(config.iter_questions(), values)


__all__ = [
    "validate_config",
    "validate_field",
    "validate_file_upload",
    "validate_form",
]
