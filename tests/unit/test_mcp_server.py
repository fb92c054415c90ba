"""
Tests for the MCP server, validation helpers and error handling.
"""

from unittest.mock import patch

import pytest

from compliance_engine import errors


class TestMCPServerCreation:
    """Tests for MCP server creation."""

    def test_server_exists(self):
        """Test MCP server instance is created."""
        from compliance_engine.mcp.server import mcp

        assert mcp is not None
        assert mcp.name == "visit-compliance-engine"

    def test_server_has_instructions(self):
        """Test instructions name the registered tools."""
        from compliance_engine.mcp.server import mcp

        for name in mcp._tool_manager._tools:
            assert name in mcp.instructions

    def test_server_can_be_imported_multiple_times(self):
        """Test importing server returns same instance."""
        from compliance_engine.mcp import mcp as mcp1
        from compliance_engine.mcp.server import mcp as mcp2

        assert mcp1 is mcp2


class TestTransportSecurity:
    """Tests for MCP transport security settings."""

    def test_hosts_from_public_url(self, monkeypatch):
        from compliance_engine.config.settings import get_settings
        from compliance_engine.mcp.server import _get_transport_security

        monkeypatch.setenv("VCE_PUBLIC_URL", "https://engine.example.com")
        monkeypatch.delenv("VCE_MCP_ALLOWED_HOSTS", raising=False)
        get_settings.cache_clear()

        security = _get_transport_security()

        assert security.enable_dns_rebinding_protection is True
        assert "engine.example.com" in security.allowed_hosts
        assert "https://engine.example.com" in security.allowed_origins

    def test_wildcard_disables_protection(self, monkeypatch):
        from compliance_engine.config.settings import get_settings
        from compliance_engine.mcp.server import _get_transport_security

        monkeypatch.setenv("VCE_MCP_ALLOWED_HOSTS", "*")
        get_settings.cache_clear()

        assert _get_transport_security().enable_dns_rebinding_protection is False

    def test_explicit_hosts(self, monkeypatch):
        from compliance_engine.config.settings import get_settings
        from compliance_engine.mcp.server import _get_transport_security

        monkeypatch.setenv("VCE_MCP_ALLOWED_HOSTS", "a.example.com, b.example.com")
        get_settings.cache_clear()

        assert _get_transport_security().allowed_hosts == ["a.example.com", "b.example.com"]


class TestMCPValidation:
    """Tests for MCP validation helpers."""

    def test_validate_visit_id_valid(self):
        """Test valid visit IDs return None."""
        from compliance_engine.mcp.validation import validate_visit_id

        assert validate_visit_id("visit-001") is None
        assert validate_visit_id("V_2026.10") is None

    def test_validate_visit_id_invalid(self):
        """Test invalid visit IDs return error message."""
        from compliance_engine.mcp.validation import validate_visit_id

        assert validate_visit_id("") is not None
        assert validate_visit_id("a" * 65) is not None  # too long
        assert validate_visit_id("visit/slash") is not None
        assert validate_visit_id("id<script>") is not None

    def test_validate_trigger_source(self):
        from compliance_engine.mcp.validation import validate_trigger_source

        assert validate_trigger_source("vitals") is None
        assert validate_trigger_source("assessment") is None
        assert "vitals, assessment" in validate_trigger_source("Vitals")


class TestMCPErrors:
    """Tests for MCP error handling."""

    def test_error_response_format(self):
        """Test error_response creates correct structure."""
        from compliance_engine.mcp.errors import error_response

        assert error_response("test_error", "Test message") == {
            "error": "test_error",
            "message": "Test message",
        }

    def test_error_response_with_details(self):
        from compliance_engine.mcp.errors import error_response

        result = error_response("x", "y", {"visit_id": "v1"})
        assert result["details"] == {"visit_id": "v1"}

    @pytest.mark.parametrize(
        "exc,code",
        [
            (errors.VisitNotFoundError("v1"), "not_found"),
            (errors.InvalidCodeError("12", "CPT"), "validation_error"),
            (errors.OverrideReasonRequiredError("v1"), "override_rejected"),
            (errors.OverrideNotAllowedError("v1", "pass"), "override_rejected"),
            (errors.VisitConflictError("v1", "finalized", "finalize"), "conflict"),
            (errors.RecommendationStateError("r1", "dismissed"), "conflict"),
            (errors.DuplicateCodeError("v1", "CPT", "99387"), "conflict"),
            (errors.InvalidTransitionError("PHQ-2", "complete", "not_started"), "conflict"),
            (errors.RuleConfigurationError("x.json", "bad"), "engine_error"),
        ],
    )
    def test_handle_engine_errors(self, exc, code):
        """Test each engine error maps to its error code."""
        from compliance_engine.mcp.errors import handle_exception

        result = handle_exception(exc, "test_op")

        assert result["error"] == code
        assert result["message"] == exc.message

    def test_handle_exception_generic_sanitized(self):
        """Test handle_exception sanitizes generic exceptions."""
        from compliance_engine.mcp.errors import handle_exception

        with patch("compliance_engine.mcp.errors.logger") as mock_logger:
            result = handle_exception(Exception("Internal database error at line 123"), "test_op")

        assert result["error"] == "internal_error"
        assert "database" not in result["message"]
        assert "test_op" in result["message"]
        mock_logger.exception.assert_called_once()
