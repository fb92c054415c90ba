"""
Visit coding and diagnosis evidence REST API endpoints.

- POST /api/visits/{visit_id}/codes/generate - Regenerate auto-assigned codes
- GET /api/visits/{visit_id}/codes - List codes
- POST /api/visits/{visit_id}/codes - Add a manual code
- POST /api/visits/{visit_id}/codes/{code_id}/swap - Swap a code
- POST /api/visits/{visit_id}/codes/{code_id}/remove - Remove a code
- POST /api/visits/{visit_id}/codes/{code_id}/verify - Verify a code
- GET /api/visits/{visit_id}/evidence - Validate diagnosis evidence
"""

from typing import Any

from fastapi import APIRouter, Header
from pydantic import BaseModel, Field

from compliance_engine.audit import AuditEvent
from compliance_engine.constants import USER_ID_HEADER
from compliance_engine.models import CodeType
from compliance_engine.routers.validation import handle_engine_error, validate_id
from compliance_engine.services import coding as coding_service
from compliance_engine.services import evidence as evidence_service

router = APIRouter(prefix="/api/visits/{visit_id}", tags=["coding"])


class GenerateRequest(BaseModel):
    """Request body for code generation."""

    preserve_manual_codes: bool | None = Field(
        default=None,
        description="Keep manually added codes; uses the configured default when omitted",
    )


class AddCodeRequest(BaseModel):
    """Request body for adding a manual code."""

    code_type: CodeType
    code: str = Field(..., description="Code value (e.g., 99397, I10)")
    description: str


class SwapCodeRequest(BaseModel):
    """Request body for swapping a code."""

    new_code: str
    new_description: str


class VerifyCodeRequest(BaseModel):
    """Request body for verifying a code."""

    verified: bool = True


def _codes_response(visit_id: str, codes) -> dict[str, Any]:
    return {"visit_id": visit_id, "codes": [code.model_dump(mode="json") for code in codes]}


@router.post("/codes/generate")
async def generate_codes(
    visit_id: str,
    request: GenerateRequest | None = None,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """Replace the visit's auto-assigned codes with a freshly generated set."""
    validate_id(visit_id)
    preserve = request.preserve_manual_codes if request else None
    try:
        codes = await coding_service.generate_codes(
            visit_id, user_id=x_user_id, preserve_manual_codes=preserve
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, event=AuditEvent.CODING_ERROR, user_id=x_user_id)
    return _codes_response(visit_id, codes)


@router.get("/codes")
async def list_codes(visit_id: str) -> dict[str, Any]:
    validate_id(visit_id)
    try:
        codes = await coding_service.list_codes(visit_id)
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, event=AuditEvent.CODING_ERROR)
    return _codes_response(visit_id, codes)


@router.post("/codes", status_code=201)
async def add_code(
    visit_id: str,
    request: AddCodeRequest,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """Add a manual code."""
    validate_id(visit_id)
    try:
        code = await coding_service.add_code(
            visit_id, request.code_type, request.code, request.description, user_id=x_user_id
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, event=AuditEvent.CODING_ERROR, user_id=x_user_id)
    return code.model_dump(mode="json")


@router.post("/codes/{code_id}/swap")
async def swap_code(
    visit_id: str,
    code_id: str,
    request: SwapCodeRequest,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """Swap a code for another of the same code type."""
    validate_id(visit_id)
    validate_id(code_id, "code_id")
    try:
        code = await coding_service.swap_code(
            visit_id, code_id, request.new_code, request.new_description, user_id=x_user_id
        )
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, event=AuditEvent.CODING_ERROR, user_id=x_user_id)
    return code.model_dump(mode="json")


@router.post("/codes/{code_id}/remove")
async def remove_code(
    visit_id: str,
    code_id: str,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    validate_id(visit_id)
    validate_id(code_id, "code_id")
    try:
        code = await coding_service.remove_code(visit_id, code_id, user_id=x_user_id)
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, event=AuditEvent.CODING_ERROR, user_id=x_user_id)
    return code.model_dump(mode="json")


@router.post("/codes/{code_id}/verify")
async def verify_code(
    visit_id: str,
    code_id: str,
    request: VerifyCodeRequest | None = None,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    validate_id(visit_id)
    validate_id(code_id, "code_id")
    verified = request.verified if request else True
    try:
        code = await coding_service.verify_code(visit_id, code_id, verified, user_id=x_user_id)
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, event=AuditEvent.CODING_ERROR, user_id=x_user_id)
    return code.model_dump(mode="json")


@router.get("/evidence")
async def validate_evidence(
    visit_id: str,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> dict[str, Any]:
    """
    Validate the evidence behind each active ICD-10 code.

    Results are computed on demand and not stored.
    """
    validate_id(visit_id)
    try:
        results = await evidence_service.validate_evidence(visit_id, user_id=x_user_id)
    except Exception as e:
        handle_engine_error(e, visit_id=visit_id, event=AuditEvent.CODING_ERROR, user_id=x_user_id)
    return {
        "visit_id": visit_id,
        "results": [result.model_dump(mode="json") for result in results],
    }
