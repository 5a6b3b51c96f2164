"""Answer shapes and the single conversion boundary for incoming values."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List

from riskform.errors import AnswerShapeError
from riskform.schema import FormConfig, Question


@dataclass(frozen=True)
class FileMeta:
    """Metadata describing one uploaded file."""

    name: str
    size: int = 0
    type: str = ""
    uploaded_at: str = ""

    @classmethod
    def from_value(cls, value: Any) -> "FileMeta":
        """Build from a ``FileMeta`` or a ``{name, size, type, uploadedAt}`` mapping."""

        if isinstance(value, FileMeta):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(f"Not a file reference: {value!r}")
        name = value.get("name")
        if not isinstance(name, str) or not name:
            raise TypeError("File reference is missing 'name'")
        size = value.get("size", 0)
        if isinstance(size, bool) or not isinstance(size, (int, float)):
            raise TypeError(f"File size must be a number, got {size!r}")
        return cls(
            name=name,
            size=int(size),
            type=str(value.get("type") or ""),
            uploaded_at=str(value.get("uploadedAt") or ""),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "type": self.type,
            "uploadedAt": self.uploaded_at,
        }


def is_blank(value: Any) -> bool:
    """Return ``True`` for ``None`` and the empty string."""

    return value is None or (isinstance(value, str) and value == "")


def is_empty_answer(value: Any) -> bool:
    """Return ``True`` for blank values and empty selections."""

    if is_blank(value):
        return True
    return isinstance(value, (list, tuple)) and len(value) == 0


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def coerce_answer(question: Question, value: Any) -> Any:
    """Return ``value`` in the runtime shape expected for ``question``.

    Blank values pass through untouched. Raises :class:`AnswerShapeError`
    when the value cannot represent an answer of the question's type.
    Unparseable numbers and dates are left for the validation engine to
    report, since those are user input problems rather than shape problems.
    """

    if is_blank(value):
        return value

    kind = question.type
    if kind == "text":
        if not isinstance(value, str):
            raise AnswerShapeError(question.id, f"expected text, got {type(value).__name__}")
        return value

    if kind == "number":
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise AnswerShapeError(question.id, f"expected a number, got {type(value).__name__}")
        return value

    if kind == "date":
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if not isinstance(value, str):
            raise AnswerShapeError(question.id, f"expected an ISO date, got {type(value).__name__}")
        return value

    if kind == "select":
        if _is_sequence(value):
            if not question.multiple:
                raise AnswerShapeError(question.id, "expected a single option")
            return [str(item) for item in value]
        if isinstance(value, Mapping):
            raise AnswerShapeError(question.id, "expected an option value")
        return str(value)

    if kind == "checkbox":
        if not _is_sequence(value):
            raise AnswerShapeError(question.id, "expected a list of option values")
        return [str(item) for item in value]

    if kind == "file":
        items = value if _is_sequence(value) else [value]
        try:
            return [FileMeta.from_value(item) for item in items]
        except TypeError as exc:
            raise AnswerShapeError(question.id, str(exc)) from exc

    return value


def normalise_values(config: FormConfig, values: Mapping[str, Any]) -> Dict[str, Any]:
    """Coerce every answer in ``values`` against ``config``.

    Keys that do not name a question are kept unchanged.
    """

    normalised: Dict[str, Any] = {}
    for key, value in values.items():
        question = config.get_question(key)
        normalised[key] = coerce_answer(question, value) if question else value
    return normalised


def to_serialisable(value: Any) -> Any:
    """``json.dumps`` default hook that turns file references into mappings."""

    if isinstance(value, FileMeta):
        return value.as_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def file_list(value: Any) -> List[Any]:
    """Return the files contained in a single-or-multiple file answer."""

    if _is_sequence(value):
        return list(value)
    return [value]


__all__ = [
    "FileMeta",
    "coerce_answer",
    "file_list",
    "is_blank",
    "is_empty_answer",
    "normalise_values",
    "to_serialisable",
]
