"""
Data types for billing readiness scoring.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from compliance_engine.models.common import utcnow


class GateResult(str, Enum):
    """Outcome of the billing gate."""

    PASS = "pass"
    FAIL = "fail"
    OVERRIDE = "override"


class FailReasonSeverity(str, Enum):
    """How a fail reason affects billing."""

    ERROR = "error"
    WARNING = "warning"


class FailReason(BaseModel):
    """A user-correctable reason a visit is not billing ready."""

    code: str = Field(description="Machine-readable reason code")
    severity: FailReasonSeverity
    description: str
    dimension: str | None = Field(default=None, description="Score dimension, if any")


class BillingReadinessResult(BaseModel):
    """Composite billing readiness score and gate decision for a visit."""

    visit_id: str
    completeness_score: int = Field(ge=0, le=100)
    diagnosis_support_score: int = Field(ge=0, le=100)
    coding_compliance_score: int = Field(ge=0, le=100)
    overall_score: int = Field(ge=0, le=100)
    gate_result: GateResult
    fail_reasons: list[FailReason] = Field(default_factory=list)
    override_reason: str | None = None
    override_by: str | None = None
    overridden_at: datetime | None = None
    evaluated_at: datetime = Field(default_factory=utcnow)
