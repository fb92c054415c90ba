"""
Tests for the billing readiness service.
"""

from unittest.mock import patch

import pytest

from compliance_engine.audit import AuditEvent
from compliance_engine.errors import (
    OverrideNotAllowedError,
    OverrideReasonRequiredError,
    ReadinessResultNotFoundError,
    VisitNotFoundError,
)
from compliance_engine.models import GateResult
from compliance_engine.services.readiness import get_readiness, override_gate, score_readiness
from conftest import VISIT_ID


class TestScoreReadiness:
    """Tests for score_readiness and get_readiness."""

    @pytest.mark.asyncio
    async def test_scores_and_stores(self, seeded_store):
        """Should score an incomplete visit as failing and store the result."""
        with patch("compliance_engine.services.readiness.audit_log") as mock_audit:
            result = await score_readiness(VISIT_ID, user_id="np-1")

        # Vitals and medication reconciliation out of eight components
        assert result.completeness_score == 25
        assert result.gate_result == GateResult.FAIL
        assert await get_readiness(VISIT_ID) == result
        assert mock_audit.call_args[0][0] == AuditEvent.BILLING_SCORED

    @pytest.mark.asyncio
    async def test_get_unscored(self, seeded_store):
        with pytest.raises(ReadinessResultNotFoundError):
            await get_readiness(VISIT_ID)

    @pytest.mark.asyncio
    async def test_unknown_visit(self, store):
        with pytest.raises(VisitNotFoundError):
            await score_readiness("missing")

    @pytest.mark.asyncio
    async def test_threshold_from_settings(self, seeded_store, monkeypatch):
        """Should pass any visit when the threshold is zero."""
        from compliance_engine.config.settings import get_settings

        monkeypatch.setenv("VCE_READINESS_PASS_THRESHOLD", "0")
        get_settings.cache_clear()

        result = await score_readiness(VISIT_ID)
        assert result.gate_result == GateResult.PASS


class TestOverrideGate:
    """Tests for override_gate."""

    @pytest.mark.asyncio
    async def test_override_failing_gate(self, seeded_store):
        """Should set the override fields and keep the scores."""
        scored = await score_readiness(VISIT_ID)

        result = await override_gate(VISIT_ID, "  Documented in paper chart ", user_id="sup-1")

        assert result.gate_result == GateResult.OVERRIDE
        assert result.override_reason == "Documented in paper chart"
        assert result.override_by == "sup-1"
        assert result.overridden_at is not None
        assert result.overall_score == scored.overall_score
        assert (await get_readiness(VISIT_ID)).gate_result == GateResult.OVERRIDE

    @pytest.mark.asyncio
    async def test_rescoring_clears_override(self, seeded_store):
        await score_readiness(VISIT_ID)
        await override_gate(VISIT_ID, "Reviewed manually", user_id="sup-1")

        result = await score_readiness(VISIT_ID)

        assert result.gate_result == GateResult.FAIL
        assert result.override_reason is None

    @pytest.mark.asyncio
    async def test_blank_reason(self, seeded_store):
        await score_readiness(VISIT_ID)
        with patch("compliance_engine.services.readiness.audit_log") as mock_audit:
            with pytest.raises(OverrideReasonRequiredError):
                await override_gate(VISIT_ID, "   ", user_id="sup-1")
        assert mock_audit.call_args.kwargs["success"] is False

    @pytest.mark.asyncio
    async def test_unscored_visit(self, seeded_store):
        with pytest.raises(OverrideNotAllowedError) as exc_info:
            await override_gate(VISIT_ID, "Reviewed", user_id="sup-1")
        assert exc_info.value.details["gate_result"] == "not_scored"

    @pytest.mark.asyncio
    async def test_passing_gate(self, seeded_store, monkeypatch):
        from compliance_engine.config.settings import get_settings

        monkeypatch.setenv("VCE_READINESS_PASS_THRESHOLD", "0")
        get_settings.cache_clear()
        await score_readiness(VISIT_ID)

        with pytest.raises(OverrideNotAllowedError):
            await override_gate(VISIT_ID, "Reviewed", user_id="sup-1")
