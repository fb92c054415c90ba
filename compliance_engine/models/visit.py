"""
Data types for visits and the clinical data captured during them.

This module contains pydantic models for:
- Visit attributes and lifecycle status
- Vitals, assessment responses, measure results
- Member-level labs and medication reconciliation entries
- Clinical notes and supervisor review decisions
- The read snapshot consumed by the engine components
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from compliance_engine.models.checklist import ChecklistItem
from compliance_engine.models.coding import VisitCode
from compliance_engine.models.common import new_id, utcnow
from compliance_engine.models.rules import Recommendation


class VisitStatus(str, Enum):
    """Lifecycle status of a home visit."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    READY_FOR_REVIEW = "ready_for_review"
    FINALIZED = "finalized"


class VisitType(str, Enum):
    """Visit types with a distinct base coding set."""

    ANNUAL_WELLNESS = "annual_wellness"
    INITIAL_ASSESSMENT = "initial_assessment"
    FOLLOW_UP = "follow_up"


class Visit(BaseModel):
    """A scheduled or in-progress clinical home visit."""

    id: str = Field(default_factory=new_id, description="Visit identifier")
    member_id: str = Field(description="Member (patient) identifier")
    np_user_id: str | None = Field(default=None, description="Assigned nurse practitioner")
    status: VisitStatus = Field(default=VisitStatus.SCHEDULED, description="Visit lifecycle status")
    visit_type: str = Field(default=VisitType.ANNUAL_WELLNESS.value, description="Visit type")
    plan_id: str | None = Field(default=None, description="Plan pack identifier")
    scheduled_date: str | None = Field(default=None, description="Scheduled date (YYYY-MM-DD)")
    identity_verified: bool = Field(default=False, description="Whether member identity was verified")
    identity_method: str | None = Field(default=None, description="How identity was verified")
    signed_at: datetime | None = None
    signed_by: str | None = None
    attestation_text: str | None = None
    finalized_at: datetime | None = None


class VitalsRecord(BaseModel):
    """Vital signs recorded during a visit (one per visit)."""

    id: str = Field(default_factory=new_id)
    visit_id: str
    systolic: int | None = None
    diastolic: int | None = None
    heart_rate: int | None = None
    respiratory_rate: int | None = None
    temperature: float | None = None
    oxygen_saturation: int | None = None
    weight: float | None = None
    height: float | None = None
    bmi: float | None = None
    pain_level: int | None = None
    notes: str | None = None
    recorded_by: str | None = None
    recorded_at: datetime = Field(default_factory=utcnow)

    def measurements(self) -> dict[str, Any]:
        """Measurement fields as a flat mapping, for rule evaluation."""
        return self.model_dump(
            exclude={"id", "visit_id", "notes", "recorded_by", "recorded_at"},
        )


class AssessmentResponse(BaseModel):
    """A completed or in-progress standardized assessment instrument."""

    id: str = Field(default_factory=new_id)
    visit_id: str
    instrument_id: str = Field(description="Instrument identifier (e.g., PHQ-2)")
    instrument_version: str = "1.0"
    responses: dict[str, Any] = Field(default_factory=dict)
    computed_score: int | None = None
    interpretation: str | None = None
    status: str = Field(default="in_progress", description="in_progress or complete")
    completed_at: datetime | None = None


class MeasureResult(BaseModel):
    """Evidence captured for a quality measure (e.g., BCS, COL)."""

    id: str = Field(default_factory=new_id)
    visit_id: str
    measure_id: str
    status: str = "not_started"
    capture_method: str | None = None
    evidence_metadata: dict[str, Any] | None = None
    completed_at: datetime | None = None


class MedReconciliationEntry(BaseModel):
    """A medication reviewed during reconciliation."""

    id: str = Field(default_factory=new_id)
    member_id: str
    medication_name: str
    generic_name: str | None = None
    dosage: str | None = None
    frequency: str | None = None
    category: str | None = None
    status: str = "active"
    notes: str | None = None

    def searchable_text(self) -> str:
        """Lower-cased name, category and notes joined for substring matching."""
        parts = [self.medication_name, self.generic_name, self.category, self.notes]
        return " ".join(p for p in parts if p).lower()


class LabResult(BaseModel):
    """A laboratory result on file for the member."""

    id: str = Field(default_factory=new_id)
    member_id: str
    test_name: str
    test_code: str | None = None
    value: float
    unit: str
    collected_date: str
    source: str = "practice"
    category: str | None = None


class ClinicalNote(BaseModel):
    """Clinical note generated at finalize time."""

    id: str = Field(default_factory=new_id)
    visit_id: str
    chief_complaint: str | None = None
    hpi_notes: str | None = None
    exam_notes: str | None = None
    assessment_measures_summary: str | None = None
    plan_notes: str | None = None
    generated_at: datetime = Field(default_factory=utcnow)
    version: int = 1


class ReviewDecisionType(str, Enum):
    """Supervisor review outcomes."""

    APPROVE = "approve"
    REQUEST_CORRECTION = "request_correction"


class ReviewDecision(BaseModel):
    """A supervisor's review of a finalized visit."""

    id: str = Field(default_factory=new_id)
    visit_id: str
    reviewer_id: str
    decision: ReviewDecisionType
    comments: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class VisitSnapshot(BaseModel):
    """Read snapshot of everything the engine needs for a single visit."""

    visit: Visit
    vitals: VitalsRecord | None = None
    assessments: list[AssessmentResponse] = Field(default_factory=list)
    measures: list[MeasureResult] = Field(default_factory=list)
    checklist: list[ChecklistItem] = Field(default_factory=list)
    medications: list[MedReconciliationEntry] = Field(default_factory=list)
    labs: list[LabResult] = Field(default_factory=list)
    codes: list[VisitCode] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)

    @property
    def visit_id(self) -> str:
        return self.visit.id

    def assessment(self, instrument_id: str) -> AssessmentResponse | None:
        """Find the assessment response for an instrument, if any."""
        for response in self.assessments:
            if response.instrument_id == instrument_id:
                return response
        return None

    def active_codes(self) -> list[VisitCode]:
        """Codes not removed by the reviewer."""
        return [c for c in self.codes if not c.removed_by_np]


class FinalizeResult(BaseModel):
    """Outcome of a finalize attempt: either blocked with reasons or finalized."""

    visit_id: str
    finalized: bool
    failing_items: list[str] = Field(default_factory=list)
    visit: Visit | None = None
    note: ClinicalNote | None = None
