"""
MCP Tools for the visit compliance engine.

This package contains thin tool wrappers that delegate to services.
"""

from compliance_engine.mcp.tools.billing import register_billing_tools
from compliance_engine.mcp.tools.coding import register_coding_tools
from compliance_engine.mcp.tools.recommendations import register_recommendation_tools
from compliance_engine.mcp.tools.visits import register_visit_tools


def register_all_tools(mcp) -> None:
    """Register all MCP tools with the server."""
    register_recommendation_tools(mcp)
    register_coding_tools(mcp)
    register_billing_tools(mcp)
    register_visit_tools(mcp)


__all__ = [
    "register_all_tools",
    "register_billing_tools",
    "register_coding_tools",
    "register_recommendation_tools",
    "register_visit_tools",
]
