"""
Billing readiness tools.

Thin wrappers around compliance_engine.services.readiness.
"""

from typing import Annotated, Any

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from compliance_engine.mcp.errors import error_response, handle_exception
from compliance_engine.mcp.validation import validate_visit_id
from compliance_engine.services.readiness import override_gate, score_readiness


def register_billing_tools(mcp: FastMCP) -> None:
    """Register readiness scoring and override tools."""

    @mcp.tool(
        description=(
            "Score a visit's billing readiness from documentation completeness, diagnosis "
            "support and coding compliance. Stores the result and clears any prior override."
        )
    )
    async def score_billing_readiness(
        visit_id: Annotated[str, Field(description="Visit identifier")],
        user_id: Annotated[str | None, Field(description="Acting user for the audit trail")] = None,
    ) -> dict[str, Any]:
        if err := validate_visit_id(visit_id):
            return error_response("validation_error", err)

        try:
            result = await score_readiness(visit_id, user_id=user_id)
            return result.model_dump(mode="json")
        except Exception as e:
            return handle_exception(e, "score_readiness")

    @mcp.tool(
        description=(
            "Override a failing billing gate. Requires a justification; scores are not changed."
        )
    )
    async def override_billing_gate(
        visit_id: Annotated[str, Field(description="Visit identifier")],
        reason: Annotated[str, Field(description="Justification for the override")],
        override_by: Annotated[str, Field(description="User performing the override")],
    ) -> dict[str, Any]:
        if err := validate_visit_id(visit_id):
            return error_response("validation_error", err)

        try:
            result = await override_gate(visit_id, reason, user_id=override_by)
            return result.model_dump(mode="json")
        except Exception as e:
            return handle_exception(e, "override_gate")
