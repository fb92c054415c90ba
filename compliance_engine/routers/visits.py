"""
Visit workflow REST API endpoints.

Provides checklist, clinical data capture and finalize endpoints:
- POST /api/visits/{visit_id}/checklist/provision - Provision checklist from plan pack
- GET /api/visits/{visit_id}/checklist - List checklist items
- POST /api/visits/{visit_id}/checklist/{item_id}/unable-to-assess - Close out an item
- POST /api/visits/{visit_id}/identity - Record identity verification
- POST /api/visits/{visit_id}/vitals - Record vitals (runs vitals triggers)
- POST /api/visits/{visit_id}/assessments - Record an assessment (runs assessment triggers)
- POST /api/visits/{visit_id}/measures - Record a measure result
- GET /api/visits/{visit_id}/finalize/gate - Check the finalize gate
- POST /api/visits/{visit_id}/finalize - Sign and finalize the visit
- POST /api/visits/{visit_id}/review - Submit a supervisor review
"""

from typing import Any

from fastapi import APIRouter, Header
from pydantic import BaseModel, Field

from compliance_engine.constants import USER_ID_HEADER
from compliance_engine.models import (
    AssessmentResponse,
    MeasureResult,
    ReviewDecisionType,
    VitalsRecord,
)
from compliance_engine.routers.validation import handle_engine_error, validate_id
from compliance_engine.services import checklist as checklist_service
from compliance_engine.services import visits as visit_service

router = APIRouter(prefix="/api/visits/{visit_id}", tags=["visits"])


# Request models
class IdentityRequest(BaseModel):
    """Request body for identity verification."""

    method: str = Field(..., description="How identity was verified (e.g., photo_id)")


class VitalsRequest(BaseModel):
    """Request body for recording vitals."""

    systolic: int | None = Field(default=None, ge=40, le=300)
    diastolic: int | None = Field(default=None, ge=20, le=200)
    heart_rate: int | None = Field(default=None, ge=20, le=250)
    respiratory_rate: int | None = Field(default=None, ge=4, le=80)
    temperature: float | None = Field(default=None, ge=85, le=115)
    oxygen_saturation: int | None = Field(default=None, ge=50, le=100)
    weight: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)
    bmi: float | None = Field(default=None, gt=0, le=150)
    pain_level: int | None = Field(default=None, ge=0, le=10)
    notes: str | None = None


class AssessmentRequest(BaseModel):
    """Request body for recording an assessment response."""

    instrument_id: str = Field(..., description="Instrument identifier (e.g., PHQ-2)")
    instrument_version: str = "1.0"
    responses: dict[str, Any] = Field(default_factory=dict)
    computed_score: int | None = None
    interpretation: str | None = None
    status: str = Field(default="complete", description="in_progress or complete")


class MeasureRequest(BaseModel):
    """Request body for recording a measure result."""

    measure_id: str = Field(..., description="Measure identifier (e.g., COL)")
    status: str = Field(default="complete")
    capture_method: str | None = None
    evidence_metadata: dict[str, Any] | None = None


class UnableToAssessRequest(BaseModel):
    """Request body for marking a checklist item unable to assess."""

    reason: str = Field(..., description="Structured unable-to-assess reason")
    note: str | None = None


class FinalizeRequest(BaseModel):
    """Request body for finalizing a visit."""

    signature: str = Field(..., description="Signing practitioner")
    attestation_text: str | None = None


class ReviewRequest(BaseModel):
    """Request body for a supervisor review."""

    reviewer_id: str
    decision: ReviewDecisionType
    comments: str | None = None


def _dump(records) -> list[dict[str, Any]]:
    return [record.model_dump(mode="json") for record in records]


@router.post("/checklist/provision")
async def provision_checklist(
    visit_id: str,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """Create the visit's checklist from its plan pack (idempotent)."""
    validate_id(visit_id)
    try:
        items = await checklist_service.provision_checklist(visit_id, user_id=x_user_id)
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, user_id=x_user_id)
    return {"visit_id": visit_id, "items": _dump(items)}


@router.get("/checklist")
async def get_checklist(visit_id: str) -> dict[str, Any]:
    """List the visit's checklist items."""
    validate_id(visit_id)
    try:
        items = await checklist_service.get_checklist(visit_id)
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id)
    return {"visit_id": visit_id, "items": _dump(items)}


@router.post("/checklist/{item_id}/unable-to-assess")
async def mark_unable_to_assess(
    visit_id: str,
    item_id: str,
    request: UnableToAssessRequest,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """Close out a checklist item with a structured unable-to-assess reason."""
    validate_id(visit_id)
    validate_id(item_id, "item_id")
    try:
        item = await checklist_service.mark_unable_to_assess(
            visit_id, item_id, request.reason, request.note, user_id=x_user_id
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, user_id=x_user_id)
    return item.model_dump(mode="json")


@router.post("/identity")
async def verify_identity(
    visit_id: str,
    request: IdentityRequest,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """Record member identity verification."""
    validate_id(visit_id)
    try:
        visit = await visit_service.verify_identity(visit_id, request.method, user_id=x_user_id)
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, user_id=x_user_id)
    return visit.model_dump(mode="json")


@router.post("/vitals")
async def record_vitals(
    visit_id: str,
    request: VitalsRequest,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """
    Record the visit's vitals.

    Returns the stored vitals and any recommendations the vitals triggered.
    """
    validate_id(visit_id)
    try:
        vitals, triggered = await checklist_service.record_vitals(
            visit_id,
            VitalsRecord(visit_id=visit_id, **request.model_dump()),
            user_id=x_user_id,
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, user_id=x_user_id)
    return {"vitals": vitals.model_dump(mode="json"), "triggered": _dump(triggered)}


@router.post("/assessments")
async def record_assessment(
    visit_id: str,
    request: AssessmentRequest,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """Record an assessment response; completed, scored responses run assessment triggers."""
    validate_id(visit_id)
    try:
        response, triggered = await checklist_service.record_assessment(
            visit_id,
            AssessmentResponse(visit_id=visit_id, **request.model_dump()),
            user_id=x_user_id,
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, user_id=x_user_id)
    return {"assessment": response.model_dump(mode="json"), "triggered": _dump(triggered)}


@router.post("/measures")
async def record_measure(
    visit_id: str,
    request: MeasureRequest,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """Record a measure result."""
    validate_id(visit_id)
    try:
        result = await checklist_service.record_measure(
            visit_id,
            MeasureResult(visit_id=visit_id, **request.model_dump()),
            user_id=x_user_id,
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, user_id=x_user_id)
    return result.model_dump(mode="json")


@router.get("/finalize/gate")
async def check_finalize_gate(visit_id: str) -> dict[str, Any]:
    """Check whether the visit can be finalized, listing each unmet requirement."""
    validate_id(visit_id)
    try:
        gate = await visit_service.check_finalize_gate(visit_id)
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id)
    return gate.model_dump(mode="json")


@router.post("/finalize")
async def finalize_visit(
    visit_id: str,
    request: FinalizeRequest,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """
    Sign the visit and send it for review.

    A blocked finalize is not an error: the response carries finalized=false
    and the failing requirement labels.
    """
    validate_id(visit_id)
    try:
        result = await visit_service.finalize_visit(
            visit_id, request.signature, request.attestation_text, user_id=x_user_id
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, user_id=x_user_id)
    return result.model_dump(mode="json", exclude_none=True)


@router.post("/review")
async def submit_review(visit_id: str, request: ReviewRequest) -> dict[str, Any]:
    """Approve a signed visit or send it back for correction."""
    validate_id(visit_id)
    try:
        visit, review = await visit_service.submit_review(
            visit_id, request.reviewer_id, request.decision, request.comments
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, user_id=request.reviewer_id)
    return {"visit": visit.model_dump(mode="json"), "review": review.model_dump(mode="json")}
