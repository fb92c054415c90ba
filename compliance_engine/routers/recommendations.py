"""
CDS recommendation REST API endpoints.

- POST /api/visits/{visit_id}/recommendations/evaluate - Run trigger rules
- GET /api/visits/{visit_id}/recommendations - List recommendations
- POST /api/visits/{visit_id}/recommendations/{recommendation_id}/dismiss - Dismiss
- POST /api/visits/{visit_id}/recommendations/{recommendation_id}/resolve - Resolve
"""

from typing import Any

from fastapi import APIRouter, Header
from pydantic import BaseModel, Field

from compliance_engine.constants import USER_ID_HEADER
from compliance_engine.models import TriggerSource
from compliance_engine.routers.validation import handle_engine_error, validate_id
from compliance_engine.services import recommendations as recommendation_service

router = APIRouter(prefix="/api/visits/{visit_id}/recommendations", tags=["recommendations"])


class EvaluateRequest(BaseModel):
    """Request body for trigger evaluation."""

    source: TriggerSource = Field(..., description="Event source: vitals or assessment")
    event_data: dict[str, Any] | None = Field(
        default=None,
        description="Event payload; the visit's stored data is used when omitted",
    )


class DismissRequest(BaseModel):
    """Request body for dismissing a recommendation."""

    reason: str = Field(..., description="Structured dismiss reason")
    note: str | None = None


@router.post("/evaluate")
async def evaluate_triggers(
    visit_id: str,
    request: EvaluateRequest,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """Evaluate trigger rules and return only the newly created recommendations."""
    validate_id(visit_id)
    try:
        created = await recommendation_service.evaluate_triggers(
            visit_id, request.source, request.event_data, user_id=x_user_id
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, user_id=x_user_id)
    return {
        "visit_id": visit_id,
        "created": [rec.model_dump(mode="json") for rec in created],
    }


@router.get("")
async def list_recommendations(visit_id: str) -> dict[str, Any]:
    """List all recommendations for a visit."""
    validate_id(visit_id)
    try:
        recs = await recommendation_service.list_recommendations(visit_id)
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id)
    return {
        "visit_id": visit_id,
        "recommendations": [rec.model_dump(mode="json") for rec in recs],
    }


@router.post("/{recommendation_id}/dismiss")
async def dismiss_recommendation(
    visit_id: str,
    recommendation_id: str,
    request: DismissRequest,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    validate_id(visit_id)
    validate_id(recommendation_id, "recommendation_id")
    try:
        rec = await recommendation_service.dismiss_recommendation(
            visit_id, recommendation_id, request.reason, request.note, user_id=x_user_id
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, user_id=x_user_id)
    return rec.model_dump(mode="json")


@router.post("/{recommendation_id}/resolve")
async def resolve_recommendation(
    visit_id: str,
    recommendation_id: str,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    validate_id(visit_id)
    validate_id(recommendation_id, "recommendation_id")
    try:
        rec = await recommendation_service.resolve_recommendation(
            visit_id, recommendation_id, user_id=x_user_id
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, user_id=x_user_id)
    return rec.model_dump(mode="json")
