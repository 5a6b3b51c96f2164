"""Exceptions raised by the questionnaire engine."""

from __future__ import annotations


class RiskFormError(Exception):
    """Base class for all engine errors."""


class SchemaError(RiskFormError, ValueError):
    """Raised when a form configuration payload is malformed."""


class AnswerShapeError(RiskFormError, ValueError):
    """Raised when an answer does not match its question's type."""

    def __init__(self, question_id: str, message: str) -> None:
        super().__init__(f"{question_id}: {message}")
        self.question_id = question_id


class FormStorageError(RiskFormError):
    """Base class for persistence failures."""


class StorageWriteError(FormStorageError):
    """Raised when form state could not be written."""


class FormImportError(FormStorageError, ValueError):
    """Raised when exported form data cannot be imported."""


class SchemaMismatchError(FormImportError):
    """Raised when imported data belongs to a different form."""

    def __init__(self, expected: str, actual: object) -> None:
        super().__init__(f"Form ID mismatch: expected {expected!r}, got {actual!r}")
        self.expected = expected
        self.actual = actual


class FormSourceError(RiskFormError):
    """Raised when a form configuration cannot be fetched."""


__all__ = [
    "AnswerShapeError",
    "FormImportError",
    "FormSourceError",
    "FormStorageError",
    "RiskFormError",
    "SchemaError",
    "SchemaMismatchError",
    "StorageWriteError",
]
