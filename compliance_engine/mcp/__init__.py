"""
MCP (Model Context Protocol) server for the visit compliance engine.

Exposes trigger evaluation, code generation, evidence validation, billing
readiness and the finalize gate as tools. The tools are thin wrappers
around the same services used by the REST API and the server is mounted
in the same FastAPI app at /mcp.
"""

from compliance_engine.mcp.server import mcp

__all__ = ["mcp"]
