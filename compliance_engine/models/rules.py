"""
Data types for Clinical Decision Support (CDS) trigger rules.

Trigger conditions are a small tagged variant:
- ThresholdCondition: one field/operator/threshold comparison
- AnyOfCondition: a primary threshold with an alternative OR-branch
- AssessmentScoreCondition: an instrument's computed score against a threshold

Rule files may also use the flat shape ``{field, operator, threshold,
or_condition}`` or ``{instrument_id, operator, score_threshold}``; these are
normalized into the tagged form when the rule is loaded.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from compliance_engine.models.common import new_id, utcnow


class ComparisonOperator(str, Enum):
    """Supported comparison operators."""

    GTE = ">="
    LTE = "<="
    GT = ">"
    LT = "<"
    EQ = "=="


class TriggerSource(str, Enum):
    """Which kind of data event a rule listens to."""

    VITALS = "vitals"
    ASSESSMENT = "assessment"


class RecommendationStatus(str, Enum):
    """Lifecycle of a triggered recommendation."""

    PENDING = "pending"
    DISMISSED = "dismissed"
    RESOLVED = "resolved"


RECOMMENDATION_DISMISS_REASONS: tuple[str, ...] = (
    "Already addressed in prior visit",
    "Not clinically indicated",
    "Patient declined",
    "Will address in follow-up",
    "Duplicate of existing order",
    "Outside scope of this visit",
    "Other (see notes)",
)


class ThresholdCondition(BaseModel):
    """A single comparison of a vitals field against a threshold."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["threshold"] = "threshold"
    field: str = Field(description="Vitals field name (e.g., systolic)")
    # Kept as a plain string so an unrecognized operator fails closed at evaluation
    operator: str = Field(description="Comparison operator")
    threshold: float


class AnyOfCondition(BaseModel):
    """A primary comparison with an alternative that also satisfies the rule."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["any_of"] = "any_of"
    primary: ThresholdCondition
    alternative: ThresholdCondition


class AssessmentScoreCondition(BaseModel):
    """An assessment instrument's computed score compared against a threshold."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["assessment_score"] = "assessment_score"
    instrument_id: str
    operator: str
    score_threshold: float


TriggerCondition = Annotated[
    Union[ThresholdCondition, AnyOfCondition, AssessmentScoreCondition],
    Field(discriminator="kind"),
]


def normalize_condition(raw: Any) -> Any:
    """Convert a flat condition mapping into the tagged variant shape."""
    if not isinstance(raw, dict) or "kind" in raw:
        return raw

    if "instrument_id" in raw:
        return {
            "kind": "assessment_score",
            "instrument_id": raw["instrument_id"],
            "operator": raw.get("operator", ""),
            "score_threshold": raw.get("score_threshold"),
        }

    primary = {
        "kind": "threshold",
        "field": raw.get("field"),
        "operator": raw.get("operator", ""),
        "threshold": raw.get("threshold"),
    }
    alternative = raw.get("or_condition")
    if alternative:
        return {
            "kind": "any_of",
            "primary": primary,
            "alternative": {"kind": "threshold", **alternative},
        }
    return primary


class TriggerRule(BaseModel):
    """A CDS rule: when its condition matches, recommend an action."""

    model_config = ConfigDict(frozen=True)

    rule_id: str = Field(description="Unique rule identifier")
    name: str
    category: str = "general"
    trigger_source: TriggerSource
    condition: TriggerCondition
    recommended_action: str
    recommended_item_type: str | None = None
    recommended_item_id: str | None = None
    priority: str = "medium"
    severity: str = "moderate"
    description: str | None = None
    active: bool = True

    @field_validator("condition", mode="before")
    @classmethod
    def _normalize_condition(cls, value: Any) -> Any:
        return normalize_condition(value)


class Recommendation(BaseModel):
    """A recommendation produced for a visit when a rule fired."""

    id: str = Field(default_factory=new_id)
    visit_id: str
    rule_id: str
    rule_name: str
    recommendation: str = Field(description="Recommended action text")
    priority: str = "medium"
    status: RecommendationStatus = RecommendationStatus.PENDING
    triggered_at: datetime = Field(default_factory=utcnow)
    resolved_at: datetime | None = None
    dismiss_reason: str | None = None
    dismiss_note: str | None = None
