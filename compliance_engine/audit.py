"""
Audit logging for visit compliance events.

Provides structured audit logging for recommendations, coding changes,
evidence validation, billing readiness decisions, checklist updates and
visit finalization. Audit persistence is delegated to whatever consumes the
``visit.audit`` logger.
"""

import logging
from typing import Any

import structlog

# Create dedicated audit logger
_audit_logger = structlog.wrap_logger(
    logging.getLogger("visit.audit"),
    wrapper_class=structlog.stdlib.BoundLogger,
)


class AuditEvent:
    """Constants for audit event types."""

    # Recommendation events
    RECOMMENDATION_TRIGGERED = "recommendation.triggered"
    RECOMMENDATION_DISMISSED = "recommendation.dismissed"
    RECOMMENDATION_RESOLVED = "recommendation.resolved"

    # Coding events
    CODING_GENERATED = "coding.generated"
    CODING_ADDED = "coding.added"
    CODING_SWAPPED = "coding.swapped"
    CODING_REMOVED = "coding.removed"
    CODING_VERIFIED = "coding.verified"

    # Evidence and billing events
    EVIDENCE_VALIDATED = "evidence.validated"
    BILLING_SCORED = "billing.scored"
    BILLING_OVERRIDE = "billing.override"

    # Checklist events
    CHECKLIST_PROVISIONED = "checklist.provisioned"
    CHECKLIST_UPDATED = "checklist.updated"
    CHECKLIST_UNABLE_TO_ASSESS = "checklist.unable_to_assess"

    # Visit events
    VISIT_IDENTITY_VERIFIED = "visit.identity_verified"
    VISIT_FINALIZED = "visit.finalized"
    VISIT_FINALIZE_BLOCKED = "visit.finalize_blocked"
    VISIT_REVIEWED = "visit.reviewed"

    # Error events
    VISIT_ERROR = "error.visit"
    CODING_ERROR = "error.coding"
    BILLING_ERROR = "error.billing"
    VALIDATION_ERROR = "error.validation"


def compute_change_summary(
    previous: dict[str, Any] | None,
    current: dict[str, Any] | None,
) -> dict[str, Any]:
    """
    Compute a summary of changes between two record versions.

    Args:
        previous: Previous record state (None for create)
        current: Current record state (None for delete)

    Returns:
        Dictionary with the operation type and the changed fields
    """
    if previous is None and current is not None:
        return {"operation": "create", "fields_set": list(current.keys())}

    if current is None and previous is not None:
        return {"operation": "delete", "fields_removed": list(previous.keys())}

    if previous is None or current is None:
        return {"operation": "unknown"}

    changes = {
        key: {"from": previous.get(key), "to": current.get(key)}
        for key in sorted(set(previous) | set(current))
        if previous.get(key) != current.get(key)
    }
    return {"operation": "update", "changes": changes}


def audit_log(
    event: str,
    *,
    visit_id: str | None = None,
    user_id: str | None = None,
    record_type: str | None = None,
    record_id: str | None = None,
    success: bool = True,
    error: str | None = None,
    details: dict[str, Any] | None = None,
    change_summary: dict[str, Any] | None = None,
) -> None:
    """
    Log an audit event.

    Args:
        event: Event type from AuditEvent constants
        visit_id: Visit the event concerns
        user_id: Acting user, if known
        record_type: Kind of record touched (code, recommendation, ...)
        record_id: ID of the record touched
        success: Whether the operation succeeded
        error: Optional error message if failed
        details: Optional additional details
        change_summary: Summary of changes between states
    """
    log_data: dict[str, Any] = {
        "audit_event": event,
        "success": success,
    }

    if visit_id:
        log_data["visit_id"] = visit_id
    if user_id:
        log_data["user_id"] = user_id
    if record_type:
        log_data["record_type"] = record_type
    if record_id:
        log_data["record_id"] = record_id
    if error:
        log_data["error"] = error
    if details:
        log_data["details"] = details
    if change_summary:
        log_data["change_summary"] = change_summary

    if success:
        _audit_logger.info(event, **log_data)
    else:
        _audit_logger.warning(event, **log_data)
