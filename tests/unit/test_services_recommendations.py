"""
Tests for the recommendation service.
"""

from unittest.mock import patch

import pytest

from compliance_engine.audit import AuditEvent
from compliance_engine.errors import (
    InvalidReasonError,
    RecommendationNotFoundError,
    RecommendationStateError,
    VisitNotFoundError,
)
from compliance_engine.models import RecommendationStatus, TriggerSource
from compliance_engine.services.recommendations import (
    dismiss_recommendation,
    evaluate_triggers,
    list_recommendations,
    resolve_recommendation,
)
from conftest import VISIT_ID


class TestEvaluateTriggers:
    """Tests for evaluate_triggers."""

    @pytest.mark.asyncio
    async def test_fires_once_per_visit(self, seeded_store):
        """Should create the BP recommendation on the first event only."""
        with patch("compliance_engine.services.recommendations.audit_log") as mock_audit:
            first = await evaluate_triggers(VISIT_ID, TriggerSource.VITALS, {"systolic": 150})
            second = await evaluate_triggers(VISIT_ID, TriggerSource.VITALS, {"systolic": 152})

        assert [r.rule_id for r in first] == ["BP_HYPERTENSION_SCREEN"]
        assert second == []
        assert len(await seeded_store.list_recommendations(VISIT_ID)) == 1
        mock_audit.assert_called_once()
        assert mock_audit.call_args[0][0] == AuditEvent.RECOMMENDATION_TRIGGERED

    @pytest.mark.asyncio
    async def test_uses_stored_vitals_without_event(self, seeded_store, sample_vitals):
        """Should evaluate the recorded vitals when no event data is passed."""
        await seeded_store.save_vitals(sample_vitals)
        recs = await evaluate_triggers(VISIT_ID, TriggerSource.VITALS)
        assert {r.rule_id for r in recs} == {"BP_HYPERTENSION_SCREEN", "BMI_OBESITY"}

    @pytest.mark.asyncio
    async def test_uses_stored_assessments(self, seeded_store, complete_phq2):
        """Should evaluate completed, scored assessments when no event data is passed."""
        await seeded_store.save_assessment(complete_phq2)
        recs = await evaluate_triggers(VISIT_ID, TriggerSource.ASSESSMENT)
        assert [r.rule_id for r in recs] == ["PHQ2_POSITIVE"]

    @pytest.mark.asyncio
    async def test_concurrent_events_insert_once(self, seeded_store):
        """Should store one recommendation when two events race."""
        import asyncio

        results = await asyncio.gather(
            evaluate_triggers(VISIT_ID, TriggerSource.VITALS, {"systolic": 150}),
            evaluate_triggers(VISIT_ID, TriggerSource.VITALS, {"diastolic": 95}),
        )
        assert sum(len(r) for r in results) == 1
        assert len(await seeded_store.list_recommendations(VISIT_ID)) == 1

    @pytest.mark.asyncio
    async def test_unknown_visit(self, store):
        with pytest.raises(VisitNotFoundError):
            await evaluate_triggers("missing", TriggerSource.VITALS, {"systolic": 150})


class TestRecommendationLifecycle:
    """Tests for dismiss and resolve."""

    @pytest.fixture
    async def rec(self, seeded_store):
        [rec] = await evaluate_triggers(VISIT_ID, TriggerSource.VITALS, {"systolic": 150})
        return rec

    @pytest.mark.asyncio
    async def test_dismiss(self, rec):
        """Should dismiss with a structured reason."""
        dismissed = await dismiss_recommendation(
            VISIT_ID, rec.id, "Not clinically indicated", "white coat", user_id="np-1"
        )
        assert dismissed.status == RecommendationStatus.DISMISSED
        assert dismissed.dismiss_reason == "Not clinically indicated"
        assert dismissed.dismiss_note == "white coat"
        assert dismissed.resolved_at is not None

    @pytest.mark.asyncio
    async def test_dismiss_invalid_reason(self, rec):
        with pytest.raises(InvalidReasonError):
            await dismiss_recommendation(VISIT_ID, rec.id, "Because")

    @pytest.mark.asyncio
    async def test_resolve(self, rec):
        resolved = await resolve_recommendation(VISIT_ID, rec.id)
        assert resolved.status == RecommendationStatus.RESOLVED

        [stored] = await list_recommendations(VISIT_ID)
        assert stored.status == RecommendationStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_only_pending_can_change(self, rec):
        """Should reject a second state change."""
        await resolve_recommendation(VISIT_ID, rec.id)
        with pytest.raises(RecommendationStateError):
            await dismiss_recommendation(VISIT_ID, rec.id, "Patient declined")

    @pytest.mark.asyncio
    async def test_dismissed_rule_stays_quiet(self, rec):
        """Should not re-fire a rule after its recommendation is dismissed."""
        await dismiss_recommendation(VISIT_ID, rec.id, "Patient declined")
        assert await evaluate_triggers(VISIT_ID, TriggerSource.VITALS, {"systolic": 170}) == []

    @pytest.mark.asyncio
    async def test_unknown_recommendation(self, seeded_store):
        with pytest.raises(RecommendationNotFoundError):
            await resolve_recommendation(VISIT_ID, "missing")
