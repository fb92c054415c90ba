"""
Input validation for the visit compliance engine.

Provides validation functions for record identifiers, code formats and
structured reasons.
"""

import re

from compliance_engine.errors import (
    InvalidCodeError,
    InvalidReasonError,
    MissingRequiredFieldError,
    ValidationError,
)
from compliance_engine.models.coding import CodeType

# Validation patterns
RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9\-_\.]{1,64}$")

CODE_PATTERNS: dict[CodeType, tuple[re.Pattern[str], str]] = {
    # 5 digits, or 4 digits + F for Category II
    CodeType.CPT: (re.compile(r"^(\d{5}|\d{4}F)$"), "Must be 5 digits, or 4 digits followed by F."),
    CodeType.HCPCS: (re.compile(r"^[A-Z]\d{4}$"), "Must be a letter followed by 4 digits."),
    CodeType.ICD10: (
        re.compile(r"^[A-Z][0-9][0-9A-Z](\.[0-9A-Z]{1,4})?$"),
        "Must be a letter, a digit and an alphanumeric, optionally followed by a dot suffix.",
    ),
}


def validate_record_id(value: str, field: str = "id") -> str:
    """
    Validate a record identifier (visit, item, code, rule).

    Raises:
        ValidationError: If the identifier is empty or malformed
    """
    if not value:
        raise MissingRequiredFieldError(field)

    if not RECORD_ID_PATTERN.match(value):
        raise ValidationError(
            f"Invalid {field} '{value}'. "
            f"Must be 1-64 characters with letters, digits, hyphens, underscores, and dots.",
            field=field,
        )

    return value


def validate_code(code: str, code_type: CodeType) -> str:
    """
    Validate a code against its code system's format.

    Args:
        code: Code to validate
        code_type: Code system

    Returns:
        The normalized (trimmed, uppercased) code

    Raises:
        InvalidCodeError: If the format is invalid
    """
    if not code or not code.strip():
        raise MissingRequiredFieldError("code")

    normalized = code.strip().upper()
    pattern, hint = CODE_PATTERNS[code_type]
    if not pattern.match(normalized):
        raise InvalidCodeError(code, code_type.value, hint)

    return normalized


def validate_reason(reason: str | None, allowed: tuple[str, ...], field: str = "reason") -> str:
    """
    Validate a structured reason.

    Raises:
        InvalidReasonError: If the reason is not one of the allowed values
    """
    if reason not in allowed:
        raise InvalidReasonError(reason, allowed, field=field)
    return reason


def require_text(value: str | None, field: str, operation: str | None = None) -> str:
    """
    Require a non-blank string.

    Raises:
        MissingRequiredFieldError: If the value is missing or blank
    """
    if value is None or not value.strip():
        raise MissingRequiredFieldError(field, operation)
    return value.strip()
