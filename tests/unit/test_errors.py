"""
Tests for the custom error types module.
"""

from compliance_engine.errors import (
    ChecklistItemNotFoundError,
    ComplianceEngineError,
    DuplicateCodeError,
    InvalidCodeError,
    InvalidReasonError,
    InvalidTransitionError,
    MissingRequiredFieldError,
    NotFoundError,
    OverrideError,
    OverrideNotAllowedError,
    OverrideReasonRequiredError,
    PlanPackNotFoundError,
    RecommendationNotFoundError,
    RecommendationStateError,
    RuleConfigurationError,
    ValidationError,
    VisitCodeNotFoundError,
    VisitConflictError,
    VisitNotFoundError,
)


class TestComplianceEngineError:
    """Tests for base error class."""

    def test_message(self):
        """Should store message."""
        error = ComplianceEngineError("Test error")
        assert error.message == "Test error"
        assert str(error) == "Test error"

    def test_details_default(self):
        """Should default details to empty dict."""
        assert ComplianceEngineError("Test").details == {}

    def test_to_dict(self):
        """Should serialize to dictionary."""
        error = ComplianceEngineError("Test error", details={"key": "value"})
        assert error.to_dict() == {
            "error": "ComplianceEngineError",
            "message": "Test error",
            "details": {"key": "value"},
        }


class TestNotFoundErrors:
    """Tests for lookup errors."""

    def test_visit_not_found(self):
        error = VisitNotFoundError("visit-001")
        assert isinstance(error, NotFoundError)
        assert "visit-001" in error.message
        assert error.to_dict()["error"] == "VisitNotFoundError"

    def test_checklist_item_not_found(self):
        error = ChecklistItemNotFoundError("visit-001", "PHQ-2")
        assert error.details == {"visit_id": "visit-001", "item_id": "PHQ-2"}

    def test_code_not_found(self):
        error = VisitCodeNotFoundError("visit-001", "code-1")
        assert error.code_id == "code-1"

    def test_recommendation_not_found(self):
        error = RecommendationNotFoundError("visit-001", "rec-1")
        assert error.details["recommendation_id"] == "rec-1"

    def test_plan_pack_not_found(self):
        assert "MA-X" in PlanPackNotFoundError("MA-X").message

    def test_plan_pack_missing(self):
        """Should explain when the visit carries no plan pack."""
        assert PlanPackNotFoundError(None).message == "Visit has no plan pack"


class TestStateErrors:
    """Tests for state errors."""

    def test_invalid_transition(self):
        error = InvalidTransitionError("PHQ-2", "complete", "not_started")
        assert error.message == "Checklist item PHQ-2 cannot move from complete to not_started"

    def test_visit_conflict(self):
        error = VisitConflictError("visit-001", "ready_for_review", "finalize")
        assert error.message == "Cannot finalize visit visit-001 in status ready_for_review"
        assert error.status == "ready_for_review"

    def test_recommendation_state(self):
        error = RecommendationStateError("rec-1", "dismissed")
        assert "already dismissed" in error.message

    def test_duplicate_code(self):
        error = DuplicateCodeError("visit-001", "ICD-10", "I10")
        assert error.details == {"visit_id": "visit-001", "code_type": "ICD-10", "code": "I10"}


class TestOverrideErrors:
    """Tests for override errors."""

    def test_reason_required(self):
        error = OverrideReasonRequiredError("visit-001")
        assert isinstance(error, OverrideError)
        assert "reason is required" in error.message

    def test_not_allowed(self):
        error = OverrideNotAllowedError("visit-001", "pass")
        assert isinstance(error, OverrideError)
        assert error.gate_result == "pass"
        assert error.details["gate_result"] == "pass"


class TestValidationErrors:
    """Tests for validation errors."""

    def test_validation_error_field(self):
        error = ValidationError("Bad input", field="visit_id")
        assert error.field == "visit_id"
        assert error.details == {"field": "visit_id"}

    def test_missing_required_field(self):
        error = MissingRequiredFieldError("signature")
        assert isinstance(error, ValidationError)
        assert error.message == "Missing required field: signature"

    def test_missing_required_field_with_operation(self):
        error = MissingRequiredFieldError("signature", "finalize")
        assert error.message == "Missing required field 'signature' for finalize"
        assert error.details["operation"] == "finalize"

    def test_invalid_code(self):
        error = InvalidCodeError("12", "CPT", "Must be 5 digits.")
        assert error.message == "Invalid CPT code: 12. Must be 5 digits."
        assert error.details == {"field": "code", "code": "12", "code_type": "CPT"}

    def test_invalid_reason(self):
        error = InvalidReasonError("Busy", ("Patient declined", "Other"))
        assert "Patient declined, Other" in error.message
        assert error.field == "reason"


class TestRuleConfigurationError:
    """Tests for configuration errors."""

    def test_message(self):
        error = RuleConfigurationError("trigger_rules.json", "duplicate rule_id BMI_OBESITY")
        assert error.message == (
            "Invalid rule configuration in trigger_rules.json: duplicate rule_id BMI_OBESITY"
        )
        assert error.source == "trigger_rules.json"
