"""
Shared validation utilities for router endpoints.

Converts validation and engine errors to appropriate HTTP exceptions.
"""

from typing import NoReturn

from fastapi import HTTPException

from compliance_engine.audit import AuditEvent, audit_log
from compliance_engine.errors import (
    ComplianceEngineError,
    DuplicateCodeError,
    InvalidTransitionError,
    NotFoundError,
    OverrideNotAllowedError,
    OverrideReasonRequiredError,
    RecommendationStateError,
    ValidationError,
    VisitConflictError,
)
from compliance_engine.validation import validate_record_id

_CONFLICT_ERRORS = (
    VisitConflictError,
    RecommendationStateError,
    DuplicateCodeError,
    InvalidTransitionError,
    OverrideNotAllowedError,
)


def validate_id(value: str, field_name: str = "visit_id") -> None:
    """
    Validate a record identifier from the request path.

    Raises:
        HTTPException: 400 for invalid format
    """
    try:
        validate_record_id(value, field_name)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())


def _status_code(e: Exception) -> int:
    if isinstance(e, NotFoundError):
        return 404
    if isinstance(e, _CONFLICT_ERRORS):
        return 409
    if isinstance(e, (ValidationError, OverrideReasonRequiredError)):
        return 400
    return 500


def handle_engine_error(
    e: Exception,
    visit_id: str | None = None,
    event: str = AuditEvent.VISIT_ERROR,
    user_id: str | None = None,
) -> NoReturn:
    """
    Convert engine errors to HTTP exceptions with audit logging.

    Raises:
        HTTPException: 404 for not found, 409 for state conflicts, 400 for
            invalid input, 500 for anything else
    """
    status_code = _status_code(e)

    audit_log(
        AuditEvent.VALIDATION_ERROR if status_code == 400 else event,
        visit_id=visit_id,
        user_id=user_id,
        success=False,
        error=type(e).__name__ if status_code != 500 else str(e),
    )

    if isinstance(e, ComplianceEngineError):
        raise HTTPException(status_code=status_code, detail=e.to_dict())
    raise HTTPException(status_code=500, detail=f"Operation failed: {str(e)}")
