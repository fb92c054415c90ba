"""
MCP Server for the visit compliance engine.

Wires together the MCP components:
- Tools (recommendations, coding, billing, visits)
- Resources (rule configuration)

MCP tools are thin wrappers around services; the server is mounted in the
same FastAPI app as the REST API.
"""

from urllib.parse import urlparse

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from compliance_engine.config.logging import get_logger
from compliance_engine.config.settings import get_settings
from compliance_engine.constants import SERVICE_NAME
from compliance_engine.mcp.resources import register_resources
from compliance_engine.mcp.tools import register_all_tools

logger = get_logger(__name__)


def _get_transport_security() -> TransportSecuritySettings | None:
    """Build transport security settings from configuration."""
    settings = get_settings()

    if settings.mcp_allowed_hosts:
        if settings.mcp_allowed_hosts == "*":
            # Disable DNS rebinding protection
            return TransportSecuritySettings(enable_dns_rebinding_protection=False)
        hosts = [h.strip() for h in settings.mcp_allowed_hosts.split(",")]
    else:
        # Derive from public_url
        host = urlparse(settings.public_url).netloc
        base_host = host.rsplit(":", 1)[0] if ":" in host else host
        hosts = [host, f"{base_host}:*", "localhost:*", "127.0.0.1:*", "[::1]:*"]

    origins = []
    for h in hosts:
        origins.append(f"http://{h}")
        origins.append(f"https://{h}")

    logger.info("MCP transport security configured", allowed_hosts=hosts)

    return TransportSecuritySettings(
        enable_dns_rebinding_protection=True,
        allowed_hosts=hosts,
        allowed_origins=origins,
    )


mcp = FastMCP(
    name=SERVICE_NAME,
    instructions=(
        "Visit compliance engine tools for in-home clinical visits. "
        "Use evaluate_visit_triggers after vitals or assessments are recorded, "
        "generate_visit_codes and validate_diagnosis_evidence to prepare coding, "
        "score_billing_readiness to check billing readiness and "
        "check_visit_finalize_gate before signing a visit."
    ),
    transport_security=_get_transport_security(),
)

register_all_tools(mcp)
register_resources(mcp)

logger.debug("MCP server configured with tools and resources")
