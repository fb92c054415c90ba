"""
Visit finalize tools.

Thin wrapper around compliance_engine.services.visits.
"""

from typing import Annotated, Any

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from compliance_engine.mcp.errors import error_response, handle_exception
from compliance_engine.mcp.validation import validate_visit_id
from compliance_engine.services.visits import check_finalize_gate


def register_visit_tools(mcp: FastMCP) -> None:
    """Register visit workflow tools."""

    @mcp.tool(
        description=(
            "Check whether a visit can be finalized. Lists every unmet requirement "
            "(identity, vitals, active diagnosis, required checklist components)."
        )
    )
    async def check_visit_finalize_gate(
        visit_id: Annotated[str, Field(description="Visit identifier")],
    ) -> dict[str, Any]:
        if err := validate_visit_id(visit_id):
            return error_response("validation_error", err)

        try:
            gate = await check_finalize_gate(visit_id)
            return gate.model_dump(mode="json")
        except Exception as e:
            return handle_exception(e, "check_finalize_gate")
