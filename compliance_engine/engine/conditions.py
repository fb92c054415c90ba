"""
Condition evaluation for CDS trigger rules.

Evaluation is total: an unsupported operator, a missing field or a
non-numeric value never raises. The comparison simply does not match, so a
misauthored rule fails closed instead of firing.
"""

import operator
from collections.abc import Callable, Mapping
from typing import Any

from compliance_engine.config.logging import get_logger
from compliance_engine.models.rules import (
    AnyOfCondition,
    AssessmentScoreCondition,
    ThresholdCondition,
)

logger = get_logger(__name__)

_COMPARATORS: dict[str, Callable[[float, float], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
    "==": operator.eq,
}

SUPPORTED_OPERATORS = frozenset(_COMPARATORS)


def evaluate(value: float, threshold: float, op: str) -> bool:
    """
    Compare a value against a threshold.

    Args:
        value: Observed value
        threshold: Configured threshold
        op: One of >=, <=, >, <, ==

    Returns:
        The comparison result, or False for an unsupported operator
    """
    compare = _COMPARATORS.get(op)
    if compare is None:
        logger.warning(f"Unsupported operator '{op}', condition fails closed")
        return False
    return compare(value, threshold)


def _numeric(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def evaluate_threshold(condition: ThresholdCondition, data: Mapping[str, Any]) -> bool:
    """Evaluate a single field comparison; an absent or null field does not match."""
    value = _numeric(data.get(condition.field))
    if value is None:
        return False
    return evaluate(value, condition.threshold, condition.operator)


def evaluate_assessment_score(
    condition: AssessmentScoreCondition, data: Mapping[str, Any]
) -> bool:
    """Match an assessment event on instrument, then compare its score."""
    if data.get("instrument_id") != condition.instrument_id:
        return False
    score = _numeric(data.get("score"))
    if score is None:
        return False
    return evaluate(score, condition.score_threshold, condition.operator)


def evaluate_condition(
    condition: ThresholdCondition | AnyOfCondition | AssessmentScoreCondition,
    data: Mapping[str, Any],
) -> bool:
    """
    Evaluate any trigger condition against event data.

    For an any-of condition the alternative is only consulted when the
    primary branch does not match.
    """
    if isinstance(condition, AnyOfCondition):
        if evaluate_threshold(condition.primary, data):
            return True
        return evaluate_threshold(condition.alternative, data)
    if isinstance(condition, ThresholdCondition):
        return evaluate_threshold(condition, data)
    if isinstance(condition, AssessmentScoreCondition):
        return evaluate_assessment_score(condition, data)

    logger.warning(f"Unknown condition type {type(condition).__name__}")
    return False
