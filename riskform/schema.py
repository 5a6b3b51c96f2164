"""Immutable questionnaire schema and helpers to build it from JSON payloads.

A form configuration is authored as JSON (camelCase keys, mirroring what the
questionnaire editor writes to ``form_schemas/<form_key>/form_schema.json``)
and converted once, at load time, into frozen dataclasses. Loading is where
the schema is normalised: bare-string options become :class:`Option`
instances, custom validators are resolved from the registry and regular
expressions are compiled so a broken pattern is reported before anyone
answers the form.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from riskform.errors import SchemaError

QUESTION_TYPES = ("text", "number", "select", "checkbox", "file", "date")
OPTION_TYPES = ("select", "checkbox")
OPERATORS = ("equals", "includes", "greaterThan", "lessThan")
DEFAULT_OPERATOR = "equals"
DEFAULT_MAX_RISK_SCORE = 100
CUSTOM_RULE = "custom"

Number = Union[int, float]
ValidatorResult = Union[bool, str]
Validator = Callable[[Any], ValidatorResult]

_VALIDATORS: Dict[str, Validator] = {}


def register_validator(name: str, func: Optional[Validator] = None):
    """Register ``func`` as the custom validator called ``name``.

    Can be used directly or as a decorator. Validators must be pure: they
    receive the answer and return ``True`` when it is acceptable, or an
    error message (any other value falls back to the rule's message).
    """

    def _register(target: Validator) -> Validator:
        _VALIDATORS[name] = target
        return target

    if func is not None:
        return _register(func)
    return _register


def unregister_validator(name: str) -> None:
    _VALIDATORS.pop(name, None)


def get_validator(name: str) -> Optional[Validator]:
    return _VALIDATORS.get(name)


@dataclass(frozen=True)
class Option:
    """A selectable answer for ``select`` and ``checkbox`` questions."""

    label: str
    value: str
    risk_value: Optional[Number] = None


@dataclass(frozen=True)
class ConditionalLogic:
    """Makes a question visible depending on another question's answer."""

    question_id: str
    answer: Any
    operator: str = DEFAULT_OPERATOR


@dataclass(frozen=True)
class ValidationRule:
    """A validation rule; only ``custom`` rules are executed by the engine."""

    type: str
    message: str
    value: Any = None
    validate: Optional[Validator] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Question:
    """One schema-typed field with visibility, validation and risk metadata."""

    id: str
    type: str
    label: str
    required: bool = False
    risk_weight: Number = 0
    help_text: Optional[str] = None
    conditional: Optional[ConditionalLogic] = None
    validation: Tuple[ValidationRule, ...] = ()
    placeholder: Optional[str] = None
    # text
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    # number
    min: Optional[Number] = None
    max: Optional[Number] = None
    step: Optional[Number] = None
    # select / checkbox
    options: Tuple[Option, ...] = ()
    multiple: bool = False
    # file
    accept: Optional[str] = None
    max_size: Optional[Number] = None
    # date
    min_date: Optional[str] = None
    max_date: Optional[str] = None

    def find_option(self, value: Any) -> Optional[Option]:
        """Return the option whose ``value`` equals ``value``, if any."""

        for option in self.options:
            if option.value == value:
                return option
        return None

    @property
    def has_risk_values(self) -> bool:
        return any(option.risk_value is not None for option in self.options)


@dataclass(frozen=True)
class Section:
    """A named, ordered group of questions."""

    id: str
    title: str
    questions: Tuple[Question, ...] = ()
    description: Optional[str] = None


@dataclass(frozen=True)
class FormConfig:
    """The full declarative schema for one questionnaire."""

    id: str
    title: str
    sections: Tuple[Section, ...] = ()
    description: Optional[str] = None
    submit_text: Optional[str] = None
    max_risk_score: Number = DEFAULT_MAX_RISK_SCORE
    _index: Dict[str, Question] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        index = {question.id: question for question in self.iter_questions()}
        object.__setattr__(self, "_index", index)

    def iter_questions(self) -> Iterator[Question]:
        """Yield every question in section order."""

        for section in self.sections:
            yield from section.questions

    def get_question(self, question_id: str) -> Optional[Question]:
        return self._index.get(question_id)


# ---------------------------------------------------------------------------
# Loading from JSON payloads
# ---------------------------------------------------------------------------


def _ensure_mapping(value: Any) -> Dict[str, Any]:
    """Return ``value`` as a dict if it is a mapping, otherwise an empty dict."""

    return dict(value) if isinstance(value, Mapping) else {}


def _ensure_list(value: Any) -> List[Any]:
    """Return ``value`` as a list if it is a sequence, otherwise an empty list."""

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return list(value)
    return []


def _clean_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if value is None:
        return ""
    return str(value).strip()


def _optional_number(payload: Mapping[str, Any], key: str, context: str) -> Optional[Number]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError(f"{context}: '{key}' must be a number, got {value!r}")
    return value


def _optional_int(payload: Mapping[str, Any], key: str, context: str) -> Optional[int]:
    value = _optional_number(payload, key, context)
    if value is None:
        return None
    if int(value) != value:
        raise SchemaError(f"{context}: '{key}' must be a whole number, got {value!r}")
    return int(value)


def _optional_text(payload: Mapping[str, Any], key: str) -> Optional[str]:
    text = _clean_text(payload.get(key))
    return text or None


def normalise_option(raw: Any, context: str) -> Option:
    """Convert a bare string or option mapping into an :class:`Option`."""

    if isinstance(raw, Option):
        return raw
    if isinstance(raw, str):
        return Option(label=raw, value=raw)
    if isinstance(raw, Mapping):
        if "value" not in raw or raw.get("value") is None:
            raise SchemaError(f"{context}: option is missing 'value'")
        value = str(raw["value"])
        label = _clean_text(raw.get("label")) or value
        risk_value = _optional_number(raw, "riskValue", context)
        return Option(label=label, value=value, risk_value=risk_value)
    raise SchemaError(f"{context}: unsupported option {raw!r}")


def _load_options(raw: Any, context: str) -> Tuple[Option, ...]:
    options = tuple(normalise_option(item, context) for item in _ensure_list(raw))
    seen = set()
    for option in options:
        if option.value in seen:
            raise SchemaError(f"{context}: duplicate option value {option.value!r}")
        seen.add(option.value)
    return options


def _load_conditional(raw: Any, context: str) -> Optional[ConditionalLogic]:
    if raw is None:
        return None
    if isinstance(raw, ConditionalLogic):
        return raw
    if not isinstance(raw, Mapping):
        raise SchemaError(f"{context}: 'conditional' must be an object")

    question_id = _clean_text(raw.get("questionId"))
    if not question_id:
        raise SchemaError(f"{context}: conditional is missing 'questionId'")

    answer = raw.get("answer")
    if isinstance(answer, Sequence) and not isinstance(answer, (str, bytes)):
        answer = list(answer)

    # Unknown operators are kept as-is; the evaluators decide what they mean.
    operator = _clean_text(raw.get("operator")) or DEFAULT_OPERATOR
    return ConditionalLogic(question_id=question_id, answer=answer, operator=operator)


def _load_rule(raw: Any, context: str) -> ValidationRule:
    if isinstance(raw, ValidationRule):
        return raw
    if not isinstance(raw, Mapping):
        raise SchemaError(f"{context}: validation rules must be objects")

    rule_type = _clean_text(raw.get("type"))
    if not rule_type:
        raise SchemaError(f"{context}: validation rule is missing 'type'")
    message = _clean_text(raw.get("message"))

    validate = raw.get("validate")
    name = _optional_text(raw, "validator")
    if validate is not None and not callable(validate):
        raise SchemaError(f"{context}: 'validate' must be callable")
    if validate is None and name:
        validate = get_validator(name)
        if validate is None:
            raise SchemaError(f"{context}: unknown validator {name!r}")

    return ValidationRule(
        type=rule_type,
        message=message,
        value=raw.get("value"),
        validate=validate,
        name=name,
    )


def load_question(raw: Any) -> Question:
    """Build a :class:`Question` from its JSON mapping."""

    if isinstance(raw, Question):
        return raw
    payload = _ensure_mapping(raw)

    question_id = _clean_text(payload.get("id"))
    if not question_id:
        raise SchemaError(f"Question is missing 'id': {raw!r}")
    context = f"question {question_id!r}"

    question_type = _clean_text(payload.get("type"))
    if question_type not in QUESTION_TYPES:
        raise SchemaError(f"{context}: unsupported type {question_type!r}")

    risk_weight = _optional_number(payload, "riskWeight", context)
    if risk_weight is None:
        risk_weight = 0
    if risk_weight < 0:
        raise SchemaError(f"{context}: 'riskWeight' must not be negative")

    pattern = payload.get("pattern")
    if pattern is not None:
        pattern = str(pattern)
        try:
            re.compile(pattern)
        except re.error as exc:
            raise SchemaError(f"{context}: invalid pattern {pattern!r}: {exc}") from exc

    options: Tuple[Option, ...] = ()
    if question_type in OPTION_TYPES:
        options = _load_options(payload.get("options"), context)

    return Question(
        id=question_id,
        type=question_type,
        label=_clean_text(payload.get("label")) or question_id,
        required=bool(payload.get("required")),
        risk_weight=risk_weight,
        help_text=_optional_text(payload, "helpText"),
        conditional=_load_conditional(payload.get("conditional"), context),
        validation=tuple(
            _load_rule(rule, context) for rule in _ensure_list(payload.get("validation"))
        ),
        placeholder=_optional_text(payload, "placeholder"),
        min_length=_optional_int(payload, "minLength", context),
        max_length=_optional_int(payload, "maxLength", context),
        pattern=pattern,
        min=_optional_number(payload, "min", context),
        max=_optional_number(payload, "max", context),
        step=_optional_number(payload, "step", context),
        options=options,
        multiple=bool(payload.get("multiple")),
        accept=_optional_text(payload, "accept"),
        max_size=_optional_number(payload, "maxSize", context),
        min_date=_optional_text(payload, "minDate"),
        max_date=_optional_text(payload, "maxDate"),
    )


def load_section(raw: Any) -> Section:
    """Build a :class:`Section` from its JSON mapping."""

    if isinstance(raw, Section):
        return raw
    payload = _ensure_mapping(raw)
    section_id = _clean_text(payload.get("id"))
    if not section_id:
        raise SchemaError(f"Section is missing 'id': {raw!r}")

    return Section(
        id=section_id,
        title=_clean_text(payload.get("title")) or section_id,
        description=_optional_text(payload, "description"),
        questions=tuple(load_question(item) for item in _ensure_list(payload.get("questions"))),
    )


def load_form_config(payload: Mapping[str, Any]) -> FormConfig:
    """Build and check a :class:`FormConfig` from a JSON payload.

    Raises :class:`SchemaError` for duplicate section or question ids,
    duplicate option values, negative weights and other malformed input.
    """

    if not isinstance(payload, Mapping):
        raise SchemaError("Form configuration must be an object")

    form_id = _clean_text(payload.get("id"))
    if not form_id:
        raise SchemaError("Form configuration is missing 'id'")

    max_risk_score = _optional_number(payload, "maxRiskScore", f"form {form_id!r}")
    if max_risk_score is None:
        max_risk_score = DEFAULT_MAX_RISK_SCORE
    if max_risk_score < 0:
        raise SchemaError(f"form {form_id!r}: 'maxRiskScore' must not be negative")

    sections = tuple(load_section(item) for item in _ensure_list(payload.get("sections")))

    section_ids = set()
    question_ids = set()
    for section in sections:
        if section.id in section_ids:
            raise SchemaError(f"form {form_id!r}: duplicate section id {section.id!r}")
        section_ids.add(section.id)
        for question in section.questions:
            if question.id in question_ids:
                raise SchemaError(f"form {form_id!r}: duplicate question id {question.id!r}")
            question_ids.add(question.id)

    return FormConfig(
        id=form_id,
        title=_clean_text(payload.get("title")) or form_id,
        description=_optional_text(payload, "description"),
        submit_text=_optional_text(payload, "submitText"),
        sections=sections,
        max_risk_score=max_risk_score,
    )


__all__ = [
    "ConditionalLogic",
    "FormConfig",
    "OPERATORS",
    "Option",
    "QUESTION_TYPES",
    "Question",
    "Section",
    "ValidationRule",
    "get_validator",
    "load_form_config",
    "load_question",
    "load_section",
    "normalise_option",
    "register_validator",
    "unregister_validator",
]
