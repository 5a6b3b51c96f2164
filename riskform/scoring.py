"""Weighted risk scoring for questionnaire answers."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from riskform.answers import is_empty_answer
from riskform.schema import OPTION_TYPES, FormConfig, Number, Question
from riskform.settings import LEVEL_BASIS_PERCENTAGE, LEVEL_BASIS_SCORE

LEVEL_LOW = "Low"
LEVEL_MEDIUM = "Medium"
LEVEL_HIGH = "High"
LEVEL_CRITICAL = "Critical"
RISK_LEVELS = (LEVEL_LOW, LEVEL_MEDIUM, LEVEL_HIGH, LEVEL_CRITICAL)

# Lower bounds, checked from the top.
THRESHOLDS = (
    (75, LEVEL_CRITICAL),
    (50, LEVEL_HIGH),
    (25, LEVEL_MEDIUM),
)


@dataclass(frozen=True)
class SectionScore:
    """Raw (not normalised) score of one section."""

    score: float
    max_score: float
    percentage: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "score": self.score,
            "maxScore": self.max_score,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class RiskScore:
    """Result of :func:`calculate_risk_score`."""

    total_score: int
    max_score: Number
    percentage: int
    level: str
    breakdown: Dict[str, SectionScore] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "totalScore": self.total_score,
            "maxScore": self.max_score,
            "percentage": self.percentage,
            "level": self.level,
            "breakdown": {key: value.as_dict() for key, value in self.breakdown.items()},
        }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def level_for(value: float) -> str:
    """Return the risk level for a score on a 0-100 scale."""

    for lower_bound, level in THRESHOLDS:
        if value >= lower_bound:
            return level
    return LEVEL_LOW


def _percentage(score: float, max_score: float) -> float:
    return score / max_score * 100 if max_score > 0 else 0


def _option_score(question: Question, value: Any) -> float:
    option = question.find_option(value)
    if option is None or option.risk_value is None:
        return question.risk_weight
    return option.risk_value


def question_score(question: Question, answer: Any) -> float:
    """Return the score contributed by ``answer`` to ``question``.

    Unanswered questions score 0. Options carrying a ``risk_value`` replace
    the weight; multi-answer selections score the mean of their options.
    """

    if is_empty_answer(answer):
        return 0

    if question.type in OPTION_TYPES and question.has_risk_values:
        if isinstance(answer, (list, tuple)):
            scores = [_option_score(question, item) for item in answer]
            return sum(scores) / len(scores)
        return _option_score(question, answer)

    return question.risk_weight


def calculate_risk_score(
    config: FormConfig,
    values: Mapping[str, Any],
    *,
    level_basis: Optional[str] = None,
) -> RiskScore:
    """Score ``values`` against ``config``.

    ``total_score`` is the answered share of the summed weights rescaled to
    ``config.max_risk_score`` and rounded. The level thresholds (25/50/75)
    are applied to that rescaled score, or to the raw percentage when
    ``level_basis`` is ``"percentage"``.
    """

    breakdown: Dict[str, SectionScore] = {}
    total_score = 0.0
    max_score = 0.0

    for section in config.sections:
        section_score = 0.0
        section_max = 0.0
        for question in section.questions:
            section_max += question.risk_weight
            section_score += question_score(question, values.get(question.id))

        breakdown[section.id] = SectionScore(
            score=section_score,
            max_score=section_max,
            percentage=_percentage(section_score, section_max),
        )
        total_score += section_score
        max_score += section_max

    percentage = _percentage(total_score, max_score)
    normalised = percentage / 100 * config.max_risk_score

    basis = level_basis or LEVEL_BASIS_SCORE
    if basis == LEVEL_BASIS_PERCENTAGE:
        level = level_for(percentage)
    elif basis == LEVEL_BASIS_SCORE:
        level = level_for(normalised)
    else:
        raise ValueError(f"Unknown level basis: {basis!r}")

    return RiskScore(
        total_score=round_half_up(normalised),
        max_score=config.max_risk_score,
        percentage=round_half_up(percentage),
        level=level,
        breakdown=breakdown,
    )


__all__ = [
    "LEVEL_CRITICAL",
    "LEVEL_HIGH",
    "LEVEL_LOW",
    "LEVEL_MEDIUM",
    "RISK_LEVELS",
    "RiskScore",
    "SectionScore",
    "calculate_risk_score",
    "level_for",
    "question_score",
    "round_half_up",
]
