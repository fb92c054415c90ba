"""
Error handling utilities for MCP tools.

Provides consistent error responses and exception handling.
"""

from typing import Any

from compliance_engine.config.logging import get_logger
from compliance_engine.errors import (
    ComplianceEngineError,
    DuplicateCodeError,
    InvalidTransitionError,
    NotFoundError,
    OverrideError,
    RecommendationStateError,
    ValidationError,
    VisitConflictError,
)

logger = get_logger(__name__)


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create a standardized error response."""
    response: dict[str, Any] = {"error": code, "message": message}
    if details:
        response["details"] = details
    return response


def handle_exception(e: Exception, operation: str) -> dict[str, Any]:
    """
    Handle exceptions consistently, sanitizing error messages.

    Engine errors carry user-facing messages and are returned as-is. Anything
    else is logged in full and reported with a generic message.
    """
    if isinstance(e, NotFoundError):
        return error_response("not_found", e.message, e.details)

    if isinstance(e, ValidationError):
        return error_response("validation_error", e.message, e.details)

    if isinstance(e, OverrideError):
        return error_response("override_rejected", e.message, e.details)

    if isinstance(e, (VisitConflictError, RecommendationStateError, DuplicateCodeError, InvalidTransitionError)):
        return error_response("conflict", e.message, e.details)

    if isinstance(e, ComplianceEngineError):
        return error_response("engine_error", e.message, e.details)

    logger.exception(f"{operation} failed", exc_info=e)
    return error_response("internal_error", f"Operation failed: {operation}")
