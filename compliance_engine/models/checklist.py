"""
Data types for required visit checklists and completeness configuration.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from compliance_engine.models.common import new_id


class ChecklistItemType(str, Enum):
    """Kinds of component a checklist item tracks."""

    ASSESSMENT = "assessment"
    MEASURE = "measure"
    VITALS = "vitals"
    MEDICATION = "medication"
    CONSENT = "consent"


class ChecklistStatus(str, Enum):
    """Completion state of a checklist item."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    UNABLE_TO_ASSESS = "unable_to_assess"


UNABLE_TO_ASSESS_REASONS: tuple[str, ...] = (
    "Patient declined",
    "Not clinically appropriate",
    "Safety issue",
    "Unable to obtain information",
    "Patient not present",
    "Equipment unavailable",
    "Time constraints",
    "Other",
)


class ChecklistItem(BaseModel):
    """A required component of a visit, provisioned from its plan pack."""

    id: str = Field(default_factory=new_id)
    visit_id: str
    item_type: ChecklistItemType
    item_id: str = Field(description="Instrument or measure identifier")
    item_name: str = Field(description="Display label")
    status: ChecklistStatus = ChecklistStatus.NOT_STARTED
    unable_to_assess_reason: str | None = None
    unable_to_assess_note: str | None = None
    completed_at: datetime | None = None
    completed_by: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ChecklistStatus.COMPLETE, ChecklistStatus.UNABLE_TO_ASSESS)


class CompletenessRule(BaseModel):
    """Whether a plan-pack component is mandatory and if an exception satisfies it."""

    plan_pack_id: str
    component_type: ChecklistItemType
    component_id: str | None = None
    label: str
    required: bool = True
    exception_allowed: bool = True


class PlanPack(BaseModel):
    """Configuration bundle defining what a visit must capture."""

    plan_id: str
    plan_name: str
    program_id: str | None = None
    visit_type: str
    required_assessments: list[str] = Field(default_factory=list)
    required_measures: list[str] = Field(default_factory=list)
    version: str = "1.0"
    active: bool = True


class FinalizeGateResult(BaseModel):
    """Outcome of the visit-level finalize gate."""

    visit_id: str
    ready_for_finalize: bool
    failing_items: list[str] = Field(
        default_factory=list, description="Labels of each unmet requirement"
    )
