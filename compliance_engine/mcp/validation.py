"""
Input validation helpers for MCP tools.

Thin wrappers around compliance_engine.validation that return error messages
instead of raising. Existence checks are left to the service layer.
"""

from compliance_engine.models import TriggerSource
from compliance_engine.validation import ValidationError
from compliance_engine.validation import validate_record_id as _validate_record_id


def validate_visit_id(visit_id: str) -> str | None:
    """Validate visit ID format, return error message if invalid."""
    try:
        _validate_record_id(visit_id, "visit_id")
        return None
    except ValidationError as e:
        return str(e)


def validate_trigger_source(source: str) -> str | None:
    """Validate a trigger source name, return error message if invalid."""
    allowed = [s.value for s in TriggerSource]
    if source not in allowed:
        return f"Invalid source '{source}'. Must be one of: {', '.join(allowed)}"
    return None
