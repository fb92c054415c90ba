"""
Tests for the checklist state machine and the finalize gate.
"""

from datetime import datetime, timezone

import pytest

from compliance_engine.engine.completion import (
    IDENTITY_NOT_VERIFIED,
    NO_ACTIVE_DIAGNOSIS,
    VITALS_NOT_RECORDED,
    CompletionGate,
    can_transition,
    item_satisfied,
    transition,
)
from compliance_engine.errors import InvalidReasonError, InvalidTransitionError
from compliance_engine.models import ChecklistItemType, ChecklistStatus, CodeType
from conftest import complete_ma_checklist, make_code, make_item, make_snapshot, make_visit

NS = ChecklistStatus.NOT_STARTED
IP = ChecklistStatus.IN_PROGRESS
DONE = ChecklistStatus.COMPLETE
UTA = ChecklistStatus.UNABLE_TO_ASSESS


class TestTransitions:
    """Tests for checklist item transitions."""

    @pytest.mark.parametrize(
        "current,target,allowed",
        [
            (NS, IP, True),
            (NS, DONE, True),
            (NS, UTA, True),
            (IP, DONE, True),
            (IP, UTA, True),
            (IP, NS, False),
            (DONE, IP, False),
            (DONE, UTA, False),
            (UTA, DONE, False),
            (DONE, DONE, True),
        ],
    )
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed

    def test_complete_stamps_completion(self):
        """Should record who completed the item and when."""
        at = datetime(2026, 10, 1, tzinfo=timezone.utc)
        item = transition(make_item("PHQ-2"), DONE, actor="np-1", at=at)

        assert item.status == DONE
        assert item.completed_by == "np-1"
        assert item.completed_at == at

    def test_same_state_is_noop(self):
        """Should return the item unchanged."""
        item = make_item("PHQ-2", status=DONE)
        assert transition(item, DONE) is item

    def test_terminal_state_rejected(self):
        """Should refuse to leave a terminal state."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(make_item("PHQ-2", status=DONE), UTA, reason="Patient declined")
        assert exc_info.value.details["current"] == "complete"

    def test_unable_to_assess_requires_reason(self):
        """Should reject a missing or unknown reason."""
        with pytest.raises(InvalidReasonError):
            transition(make_item("PHQ-2"), UTA)
        with pytest.raises(InvalidReasonError):
            transition(make_item("PHQ-2"), UTA, reason="Felt like it")

    def test_unable_to_assess_records_reason(self):
        """Should keep the reason and note."""
        item = transition(make_item("PHQ-2"), UTA, reason="Patient declined", note="asleep")
        assert item.unable_to_assess_reason == "Patient declined"
        assert item.unable_to_assess_note == "asleep"
        assert item.completed_at is not None


class TestItemSatisfied:
    """Tests for component satisfaction."""

    def test_complete(self):
        assert item_satisfied(make_item("X", status=DONE)) is True

    def test_exception_allowed(self):
        assert item_satisfied(make_item("X", status=UTA), exception_allowed=True) is True

    def test_exception_not_allowed(self):
        assert item_satisfied(make_item("X", status=UTA), exception_allowed=False) is False

    def test_open(self):
        assert item_satisfied(make_item("X", status=IP)) is False


class TestCompletenessScore:
    """Tests for the completeness percentage."""

    @pytest.fixture
    def gate(self, rule_config):
        return CompletionGate(rule_config)

    def test_fully_complete(self, gate, normal_vitals, diabetes_medication):
        """Should score 100 when every required component is satisfied."""
        snapshot = make_snapshot(
            vitals=normal_vitals,
            medications=[diabetes_medication],
            checklist=complete_ma_checklist(),
        )
        score, missing = gate.completeness_score(snapshot)
        assert score == 100
        assert missing == []

    def test_partial(self, gate, normal_vitals):
        """Should count vitals as the only satisfied MA component."""
        score, missing = gate.completeness_score(make_snapshot(vitals=normal_vitals))
        # 1 of 8 required components, 12.5 rounded half up
        assert score == 13
        assert "Medication reconciliation" in missing
        assert "Controlling High Blood Pressure" in missing

    def test_rounds_half_up(self, gate, normal_vitals, diabetes_medication):
        """Should round 5 of 8 components (62.5) up to 63."""
        checklist = complete_ma_checklist()[:3]
        snapshot = make_snapshot(
            vitals=normal_vitals, medications=[diabetes_medication], checklist=checklist
        )
        assert gate.completeness_score(snapshot)[0] == 63

    def test_no_rules_scores_100(self, gate):
        """Should score 100 when the plan has no rules and no checklist."""
        snapshot = make_snapshot(visit=make_visit(plan_id=None))
        assert gate.completeness_score(snapshot) == (100, [])

    def test_uncovered_items_are_required(self, gate):
        """Should count checklist items without a rule as required components."""
        snapshot = make_snapshot(
            visit=make_visit(plan_id=None),
            checklist=[make_item("PHQ-2", status=DONE), make_item("FMC", ChecklistItemType.MEASURE)],
        )
        assert gate.completeness_score(snapshot) == (50, ["FMC"])

    def test_optional_component_ignored(self, gate, normal_vitals):
        """Should not count ACA medication reconciliation, which is optional."""
        components = gate.components(
            make_snapshot(visit=make_visit(plan_id="ACA-PLAN-001"), vitals=normal_vitals)
        )
        meds = [c for c in components if c.component_type == ChecklistItemType.MEDICATION]
        assert meds[0].required is False


class TestFinalizeGate:
    """Tests for the finalize gate."""

    @pytest.fixture
    def gate(self, rule_config):
        return CompletionGate(rule_config)

    @pytest.fixture
    def ready_snapshot(self, normal_vitals, diabetes_medication):
        return make_snapshot(
            visit=make_visit(identity_verified=True),
            vitals=normal_vitals,
            medications=[diabetes_medication],
            checklist=complete_ma_checklist(),
            codes=[make_code("Z00.00")],
        )

    def test_ready(self, gate, ready_snapshot):
        """Should pass when every requirement is met."""
        result = gate.check(ready_snapshot)
        assert result.ready_for_finalize is True
        assert result.failing_items == []

    def test_hard_requirements_listed_first(self, gate):
        """Should list identity, vitals and diagnosis before components."""
        result = gate.check(make_snapshot())

        assert result.ready_for_finalize is False
        assert result.failing_items[:3] == [
            IDENTITY_NOT_VERIFIED,
            VITALS_NOT_RECORDED,
            NO_ACTIVE_DIAGNOSIS,
        ]
        # Vitals component is not reported twice
        assert "Vitals recorded" not in result.failing_items

    def test_removed_diagnosis_does_not_count(self, gate, ready_snapshot):
        """Should ignore ICD-10 codes removed by the reviewer."""
        snapshot = ready_snapshot.model_copy(
            update={
                "codes": [
                    make_code("Z00.00", removed_by_np=True),
                    make_code("99387", CodeType.CPT),
                ]
            }
        )
        assert gate.check(snapshot).failing_items == [NO_ACTIVE_DIAGNOSIS]

    def test_exception_not_allowed_blocks(self, gate, ready_snapshot):
        """Should block when AWV is unable to assess, which allows no exception."""
        checklist = [
            item if item.item_id != "AWV" else item.model_copy(update={"status": UTA})
            for item in ready_snapshot.checklist
        ]
        snapshot = ready_snapshot.model_copy(update={"checklist": checklist})
        result = gate.check(snapshot)

        assert result.ready_for_finalize is False
        assert result.failing_items == ["Annual Wellness Visit Health Risk Assessment"]

    def test_exception_allowed_passes(self, gate, ready_snapshot):
        """Should accept PRAPARE as unable to assess."""
        checklist = [
            item if item.item_id != "PRAPARE" else item.model_copy(update={"status": UTA})
            for item in ready_snapshot.checklist
        ]
        snapshot = ready_snapshot.model_copy(update={"checklist": checklist})
        assert gate.check(snapshot).ready_for_finalize is True

    def test_multiple_failures(self, gate, ready_snapshot):
        """Should list every unmet requirement."""
        checklist = [
            item if item.item_id != "COL" else item.model_copy(update={"status": IP})
            for item in ready_snapshot.checklist
        ]
        snapshot = ready_snapshot.model_copy(
            update={"visit": make_visit(identity_verified=False), "checklist": checklist}
        )
        result = gate.check(snapshot)
        assert result.failing_items == [IDENTITY_NOT_VERIFIED, "Colorectal Cancer Screening"]

    def test_component_without_checklist_item_does_not_block(self, gate, ready_snapshot):
        """Should finalize with no medications, since medication reconciliation has no checklist item."""
        snapshot = ready_snapshot.model_copy(update={"medications": []})

        result = gate.check(snapshot)

        assert result.ready_for_finalize is True
        assert result.failing_items == []
        # Still scored as a missing component
        score, missing = gate.completeness_score(snapshot)
        assert missing == ["Medication reconciliation"]
        assert score == 88

    def test_open_checklist_item_blocks(self, gate, ready_snapshot):
        """Should block on a required checklist item that is still open."""
        checklist = [
            item if item.item_id != "PHQ-2" else item.model_copy(update={"status": NS})
            for item in ready_snapshot.checklist
        ]
        result = gate.check(ready_snapshot.model_copy(update={"checklist": checklist}))

        assert result.ready_for_finalize is False
        assert result.failing_items == ["Patient Health Questionnaire-2"]
