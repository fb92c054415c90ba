"""
Coding and diagnosis evidence tools.

Thin wrappers around compliance_engine.services.coding and
compliance_engine.services.evidence.
"""

from typing import Annotated, Any

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from compliance_engine.mcp.errors import error_response, handle_exception
from compliance_engine.mcp.validation import validate_visit_id
from compliance_engine.models import EvidenceStatus
from compliance_engine.services.coding import generate_codes
from compliance_engine.services.evidence import validate_evidence


def register_coding_tools(mcp: FastMCP) -> None:
    """Register code generation and evidence validation tools."""

    @mcp.tool(
        description=(
            "Generate CPT, HCPCS and ICD-10 codes for a visit from its type, vitals and "
            "completed checklist items. Replaces the visit's previous auto-assigned codes."
        )
    )
    async def generate_visit_codes(
        visit_id: Annotated[str, Field(description="Visit identifier")],
        preserve_manual_codes: Annotated[
            bool | None,
            Field(description="Keep manually added codes; uses the server default when omitted"),
        ] = None,
        user_id: Annotated[str | None, Field(description="Acting user for the audit trail")] = None,
    ) -> dict[str, Any]:
        if err := validate_visit_id(visit_id):
            return error_response("validation_error", err)

        try:
            codes = await generate_codes(
                visit_id, user_id=user_id, preserve_manual_codes=preserve_manual_codes
            )
            return {
                "visit_id": visit_id,
                "codes": [code.model_dump(mode="json") for code in codes],
                "total": len(codes),
            }
        except Exception as e:
            return handle_exception(e, "generate_codes")

    @mcp.tool(
        description=(
            "Check whether each active ICD-10 diagnosis on a visit is supported by its "
            "required evidence (vitals, labs, medications, assessments)."
        )
    )
    async def validate_diagnosis_evidence(
        visit_id: Annotated[str, Field(description="Visit identifier")],
        user_id: Annotated[str | None, Field(description="Acting user for the audit trail")] = None,
    ) -> dict[str, Any]:
        if err := validate_visit_id(visit_id):
            return error_response("validation_error", err)

        try:
            results = await validate_evidence(visit_id, user_id=user_id)
            return {
                "visit_id": visit_id,
                "results": [result.model_dump(mode="json") for result in results],
                "unsupported": [
                    result.icd_code
                    for result in results
                    if result.status in (EvidenceStatus.PARTIAL, EvidenceStatus.UNSUPPORTED)
                ],
            }
        except Exception as e:
            return handle_exception(e, "validate_evidence")
