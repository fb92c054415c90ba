"""
Billing readiness REST API endpoints.

- POST /api/visits/{visit_id}/readiness - Score billing readiness
- GET /api/visits/{visit_id}/readiness - Get the stored readiness result
- POST /api/visits/{visit_id}/readiness/override - Override a failing gate
"""

from typing import Any

from fastapi import APIRouter, Header
from pydantic import BaseModel, Field

from compliance_engine.audit import AuditEvent
from compliance_engine.constants import USER_ID_HEADER
from compliance_engine.routers.validation import handle_engine_error, validate_id
from compliance_engine.services import readiness as readiness_service

router = APIRouter(prefix="/api/visits/{visit_id}/readiness", tags=["billing"])


class OverrideRequest(BaseModel):
    """Request body for a gate override."""

    reason: str | None = Field(default=None, description="Justification for the override")
    override_by: str | None = Field(
        default=None,
        description="Overriding user; falls back to the X-User-Id header",
    )


@router.post("")
async def score_readiness(
    visit_id: str,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """Score the visit and store the result, replacing any earlier result and override."""
    validate_id(visit_id)
    try:
        result = await readiness_service.score_readiness(visit_id, user_id=x_user_id)
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, event=AuditEvent.BILLING_ERROR, user_id=x_user_id)
    return result.model_dump(mode="json")


@router.get("")
async def get_readiness(visit_id: str) -> dict[str, Any]:
    validate_id(visit_id)
    try:
        result = await readiness_service.get_readiness(visit_id)
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, event=AuditEvent.BILLING_ERROR)
    return result.model_dump(mode="json")


@router.post("/override")
async def override_gate(
    visit_id: str,
    request: OverrideRequest,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """Override a failing gate. Requires a non-blank reason."""
    validate_id(visit_id)
    override_by = request.override_by or x_user_id or "unknown"
    try:
        result = await readiness_service.override_gate(
            visit_id, request.reason, user_id=override_by
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, event=AuditEvent.BILLING_ERROR, user_id=override_by)
    return result.model_dump(mode="json")
