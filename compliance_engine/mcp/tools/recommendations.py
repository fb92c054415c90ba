"""
CDS recommendation tools.

Thin wrappers around compliance_engine.services.recommendations.
"""

from typing import Annotated, Any

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from compliance_engine.mcp.errors import error_response, handle_exception
from compliance_engine.mcp.validation import validate_trigger_source, validate_visit_id
from compliance_engine.models import TriggerSource
from compliance_engine.services.recommendations import evaluate_triggers, list_recommendations


def register_recommendation_tools(mcp: FastMCP) -> None:
    """Register trigger evaluation tools."""

    @mcp.tool(
        description=(
            "Evaluate CDS trigger rules for a visit event. Returns only recommendations "
            "created by this call; rules that already fired for the visit are skipped."
        )
    )
    async def evaluate_visit_triggers(
        visit_id: Annotated[str, Field(description="Visit identifier")],
        source: Annotated[str, Field(description="Trigger source: 'vitals' or 'assessment'")],
        event_data: Annotated[
            dict[str, Any] | None,
            Field(
                description=(
                    "Event payload, e.g. {'systolic': 150} or {'instrument_id': 'PHQ-2', 'score': 4}. "
                    "Omit to evaluate the visit's recorded data."
                )
            ),
        ] = None,
        user_id: Annotated[str | None, Field(description="Acting user for the audit trail")] = None,
    ) -> dict[str, Any]:
        if err := validate_visit_id(visit_id):
            return error_response("validation_error", err)
        if err := validate_trigger_source(source):
            return error_response("validation_error", err)

        try:
            created = await evaluate_triggers(
                visit_id, TriggerSource(source), event_data, user_id=user_id
            )
            return {
                "visit_id": visit_id,
                "created": [rec.model_dump(mode="json") for rec in created],
                "total": len(created),
            }
        except Exception as e:
            return handle_exception(e, "evaluate_triggers")

    @mcp.tool(description="List all CDS recommendations for a visit.")
    async def get_recommendations(
        visit_id: Annotated[str, Field(description="Visit identifier")],
    ) -> dict[str, Any]:
        if err := validate_visit_id(visit_id):
            return error_response("validation_error", err)

        try:
            recs = await list_recommendations(visit_id)
            return {
                "visit_id": visit_id,
                "recommendations": [rec.model_dump(mode="json") for rec in recs],
            }
        except Exception as e:
            return handle_exception(e, "get_recommendations")
