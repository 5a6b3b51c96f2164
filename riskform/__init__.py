"""Questionnaire evaluation and risk scoring engine."""

from .conditions import (  # noqa: F401
    evaluate_condition,
    get_visible_questions,
    get_visible_questions_for_config,
    is_field_visible,
)
from .errors import (  # noqa: F401
    FormImportError,
    SchemaError,
    SchemaMismatchError,
    StorageWriteError,
)
from .schema import FormConfig, Question, Section, load_form_config, register_validator  # noqa: F401
from .scoring import RiskScore, calculate_risk_score  # noqa: F401
from .storage import FormStorage, InMemoryStore  # noqa: F401
from .validation import validate_config, validate_field, validate_form  # noqa: F401
