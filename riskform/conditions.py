"""Conditional visibility of questions."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional

from riskform.answers import is_blank
from riskform.schema import DEFAULT_OPERATOR, ConditionalLogic, FormConfig, Question

logger = logging.getLogger(__name__)


def _strict_equals(left: Any, right: Any) -> bool:
    """Equality that never treats a boolean as a number."""

    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return left == right


def _contains(container: Iterable[Any], item: Any) -> bool:
    return any(_strict_equals(candidate, item) for candidate in container)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(_as_text(item) for item in value)
    return str(value)


def _to_number(value: Any) -> float:
    """Coerce ``value`` to a float, returning ``nan`` when that is impossible."""

    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _apply_operator(operator: str, answer: Any, current: Any) -> Optional[bool]:
    """Evaluate one operator; ``None`` means the operator is not supported."""

    if operator == "equals":
        if isinstance(answer, (list, tuple)):
            if isinstance(current, (list, tuple)):
                return any(_contains(current, item) for item in answer)
            return _contains(answer, current)
        return _strict_equals(current, answer)

    if operator == "includes":
        # A condition without an answer has nothing to look for.
        if answer is None:
            return False
        if isinstance(current, (list, tuple)):
            if isinstance(answer, (list, tuple)):
                return any(_contains(current, item) for item in answer)
            return _contains(current, answer)
        return _as_text(answer) in _as_text(current)

    # Comparisons against nan are always False.
    if operator == "greaterThan":
        return _to_number(current) > _to_number(answer)
    if operator == "lessThan":
        return _to_number(current) < _to_number(answer)

    return None


def is_field_visible(question: Question, values: Mapping[str, Any]) -> bool:
    """Return whether ``question`` should be shown for the current ``values``.

    A question whose condition references an unanswered question (missing,
    ``None`` or ``""``) is hidden whatever the operator. ``0`` and ``False``
    count as answers. Unknown operators leave the question visible.
    """

    conditional = question.conditional
    if conditional is None:
        return True

    current = values.get(conditional.question_id)
    if is_blank(current):
        return False

    operator = conditional.operator or DEFAULT_OPERATOR
    result = _apply_operator(operator, conditional.answer, current)
    if result is None:
        logger.warning(
            "Unsupported operator %r on question %r; showing it", operator, question.id
        )
        return True
    return result


def get_visible_questions(
    questions: Iterable[Question], values: Mapping[str, Any]
) -> List[Question]:
    """Return the questions from ``questions`` that are currently visible."""

    return [question for question in questions if is_field_visible(question, values)]


def get_visible_questions_for_config(
    config: FormConfig, values: Mapping[str, Any]
) -> List[Question]:
    """Return the visible questions of every section, in form order."""

    return get_visible_questions(config.iter_questions(), values)


def evaluate_condition(conditional: Optional[ConditionalLogic], current: Any) -> bool:
    """Evaluate ``conditional`` against an already resolved answer.

    Unlike :func:`is_field_visible` there is no blank-answer guard, and an
    unknown operator evaluates to ``False``. Use this for rules that must
    only fire on an explicit match.
    """

    if conditional is None:
        return True

    operator = conditional.operator or DEFAULT_OPERATOR
    result = _apply_operator(operator, conditional.answer, current)
    if result is None:
        logger.warning("Unsupported operator %r; condition is false", operator)
        return False
    return result


__all__ = [
    "evaluate_condition",
    "get_visible_questions",
    "get_visible_questions_for_config",
    "is_field_visible",
]
