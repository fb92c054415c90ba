"""
Custom error types for the visit compliance engine.

Gating failures (finalize blocked, billing gate fail) are returned as
structured data, not raised. The errors here cover lookups that miss,
illegal state changes, rejected overrides and bad input.
"""

from typing import Any


class ComplianceEngineError(Exception):
    """Base exception for all compliance engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# Not Found Errors


class NotFoundError(ComplianceEngineError):
    """Base exception for lookups that found nothing."""

    pass


class VisitNotFoundError(NotFoundError):
    """Raised when a visit does not exist."""

    def __init__(self, visit_id: str):
        self.visit_id = visit_id
        super().__init__(f"Visit not found: {visit_id}", details={"visit_id": visit_id})


class ChecklistItemNotFoundError(NotFoundError):
    """Raised when a visit has no checklist item with the given item ID."""

    def __init__(self, visit_id: str, item_id: str):
        self.visit_id = visit_id
        self.item_id = item_id
        super().__init__(
            f"Checklist item {item_id} not found for visit {visit_id}",
            details={"visit_id": visit_id, "item_id": item_id},
        )


class VisitCodeNotFoundError(NotFoundError):
    """Raised when a visit code row does not exist."""

    def __init__(self, visit_id: str, code_id: str):
        self.visit_id = visit_id
        self.code_id = code_id
        super().__init__(
            f"Code {code_id} not found for visit {visit_id}",
            details={"visit_id": visit_id, "code_id": code_id},
        )


class RecommendationNotFoundError(NotFoundError):
    """Raised when a recommendation does not exist for the visit."""

    def __init__(self, visit_id: str, recommendation_id: str):
        self.visit_id = visit_id
        self.recommendation_id = recommendation_id
        super().__init__(
            f"Recommendation {recommendation_id} not found for visit {visit_id}",
            details={"visit_id": visit_id, "recommendation_id": recommendation_id},
        )


class ReadinessResultNotFoundError(NotFoundError):
    """Raised when a visit has never been scored."""

    def __init__(self, visit_id: str):
        self.visit_id = visit_id
        super().__init__(
            f"No billing readiness result for visit {visit_id}",
            details={"visit_id": visit_id},
        )


class PlanPackNotFoundError(NotFoundError):
    """Raised when a visit references an unknown plan pack."""

    def __init__(self, plan_id: str | None):
        self.plan_id = plan_id
        message = f"Plan pack not found: {plan_id}" if plan_id else "Visit has no plan pack"
        super().__init__(message, details={"plan_id": plan_id})


# State Errors


class InvalidTransitionError(ComplianceEngineError):
    """Raised when a checklist item cannot move to the requested status."""

    def __init__(self, item_id: str, current: str, requested: str):
        self.item_id = item_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Checklist item {item_id} cannot move from {current} to {requested}",
            details={"item_id": item_id, "current": current, "requested": requested},
        )


class VisitConflictError(ComplianceEngineError):
    """Raised when a visit status change loses a compare-and-set."""

    def __init__(self, visit_id: str, status: str, operation: str):
        self.visit_id = visit_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} visit {visit_id} in status {status}",
            details={"visit_id": visit_id, "status": status, "operation": operation},
        )


class RecommendationStateError(ComplianceEngineError):
    """Raised when a recommendation is no longer pending."""

    def __init__(self, recommendation_id: str, status: str):
        self.recommendation_id = recommendation_id
        self.status = status
        super().__init__(
            f"Recommendation {recommendation_id} is already {status}",
            details={"recommendation_id": recommendation_id, "status": status},
        )


class DuplicateCodeError(ComplianceEngineError):
    """Raised when a manual edit would duplicate an active (code_type, code)."""

    def __init__(self, visit_id: str, code_type: str, code: str):
        self.visit_id = visit_id
        self.code_type = code_type
        self.code = code
        super().__init__(
            f"{code_type} {code} is already active on visit {visit_id}",
            details={"visit_id": visit_id, "code_type": code_type, "code": code},
        )


# Billing Gate Override Errors


class OverrideError(ComplianceEngineError):
    """Base exception for rejected billing gate overrides."""

    pass


class OverrideReasonRequiredError(OverrideError):
    """Raised when an override is attempted without a reason."""

    def __init__(self, visit_id: str):
        self.visit_id = visit_id
        super().__init__(
            f"An override reason is required to override the billing gate for visit {visit_id}",
            details={"visit_id": visit_id},
        )


class OverrideNotAllowedError(OverrideError):
    """Raised when the current gate result cannot be overridden."""

    def __init__(self, visit_id: str, gate_result: str):
        self.visit_id = visit_id
        self.gate_result = gate_result
        super().__init__(
            f"Billing gate for visit {visit_id} is '{gate_result}'; only a failing gate can be overridden",
            details={"visit_id": visit_id, "gate_result": gate_result},
        )


# Input Validation Errors


class ValidationError(ComplianceEngineError):
    """Base exception for input validation errors."""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        self.field = field
        super().__init__(message, details={"field": field, **(details or {})})


class MissingRequiredFieldError(ValidationError):
    """Raised when a required field is missing."""

    def __init__(self, field_name: str, operation: str | None = None):
        self.field_name = field_name
        self.operation = operation
        message = f"Missing required field: {field_name}"
        if operation:
            message = f"Missing required field '{field_name}' for {operation}"
        super().__init__(message, field=field_name, details={"operation": operation})


class InvalidCodeError(ValidationError):
    """Raised when a code does not match its code system's format."""

    def __init__(self, code: str, code_type: str, reason: str | None = None):
        self.code = code
        self.code_type = code_type
        message = f"Invalid {code_type} code: {code}"
        if reason:
            message += f". {reason}"
        super().__init__(message, field="code", details={"code": code, "code_type": code_type})


class InvalidReasonError(ValidationError):
    """Raised when a structured reason is not one of the allowed values."""

    def __init__(self, reason: str | None, allowed: tuple[str, ...], field: str = "reason"):
        self.reason = reason
        self.allowed = allowed
        super().__init__(
            f"Invalid {field} '{reason}'. Allowed: {', '.join(allowed)}",
            field=field,
            details={"reason": reason},
        )


# Configuration Errors


class RuleConfigurationError(ComplianceEngineError):
    """Raised when a rule configuration file cannot be loaded."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(
            f"Invalid rule configuration in {source}: {reason}",
            details={"source": source, "reason": reason},
        )
