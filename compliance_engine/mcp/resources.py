"""
MCP Resources for the visit compliance engine.

Exposes the loaded rule configuration as MCP resources.
"""

import json

from mcp.server.fastmcp import FastMCP

from compliance_engine.config.rules import get_rule_config


def register_resources(mcp: FastMCP) -> None:
    """Register MCP resources."""

    @mcp.resource(
        uri="rules://plan-packs",
        name="Plan Packs",
        description="Plan packs with their required assessments and measures.",
        mime_type="application/json",
    )
    async def plan_packs_resource() -> str:
        config = get_rule_config()
        packs = [pack.model_dump(mode="json") for pack in config.plan_packs.values()]
        return json.dumps({"plan_packs": packs, "total": len(packs)}, indent=2)

    @mcp.resource(
        uri="rules://evidence/{icd_code}",
        name="Diagnosis Evidence Rule",
        description="Evidence required to support a specific ICD-10 code.",
        mime_type="application/json",
    )
    async def evidence_rule_resource(icd_code: str) -> str:
        rule = get_rule_config().get_evidence_rule(icd_code.upper())
        if rule is None:
            return json.dumps({"error": f"No evidence rule for '{icd_code}'"})
        return json.dumps(rule.model_dump(mode="json"), indent=2)
