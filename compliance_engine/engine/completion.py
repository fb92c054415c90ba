"""
Checklist state machine and the visit-level finalize gate.

Item states::

    not_started -> in_progress -> complete
    not_started / in_progress -> unable_to_assess

``complete`` and ``unable_to_assess`` are final for the visit. Moving an
item to the state it is already in is a no-op.

The finalize gate requires identity verification, a vitals record, at least
one active ICD-10 code, and every required checklist item satisfied. An item
marked unable-to-assess only counts when its completeness rule allows an
exception. Plan-pack components with no checklist item feed the completeness
score but never block finalize.
"""

import math
from dataclasses import dataclass
from datetime import datetime

from compliance_engine.config.logging import get_logger
from compliance_engine.config.rules import RuleConfiguration
from compliance_engine.errors import InvalidReasonError, InvalidTransitionError
from compliance_engine.models.checklist import (
    UNABLE_TO_ASSESS_REASONS,
    ChecklistItem,
    ChecklistItemType,
    ChecklistStatus,
    CompletenessRule,
    FinalizeGateResult,
)
from compliance_engine.models.coding import CodeType
from compliance_engine.models.common import utcnow
from compliance_engine.models.visit import VisitSnapshot

logger = get_logger(__name__)

IDENTITY_NOT_VERIFIED = "Identity not verified"
VITALS_NOT_RECORDED = "Vitals not recorded"
NO_ACTIVE_DIAGNOSIS = "No active ICD-10 diagnosis code"

_TRANSITIONS: dict[ChecklistStatus, frozenset[ChecklistStatus]] = {
    ChecklistStatus.NOT_STARTED: frozenset(
        {ChecklistStatus.IN_PROGRESS, ChecklistStatus.COMPLETE, ChecklistStatus.UNABLE_TO_ASSESS}
    ),
    ChecklistStatus.IN_PROGRESS: frozenset(
        {ChecklistStatus.COMPLETE, ChecklistStatus.UNABLE_TO_ASSESS}
    ),
    ChecklistStatus.COMPLETE: frozenset(),
    ChecklistStatus.UNABLE_TO_ASSESS: frozenset(),
}


def can_transition(current: ChecklistStatus, target: ChecklistStatus) -> bool:
    return current == target or target in _TRANSITIONS[current]


def transition(
    item: ChecklistItem,
    target: ChecklistStatus,
    *,
    reason: str | None = None,
    note: str | None = None,
    actor: str | None = None,
    at: datetime | None = None,
) -> ChecklistItem:
    """
    Move a checklist item to a new status.

    Args:
        item: Current item
        target: Requested status
        reason: Structured reason, required for unable_to_assess
        note: Free-text note for unable_to_assess
        actor: User completing the item
        at: Completion time (defaults to now)

    Returns:
        The updated item (or the same item for a same-state request)

    Raises:
        InvalidTransitionError: If the transition is not allowed
        InvalidReasonError: If unable_to_assess is requested without a valid reason
    """
    if item.status == target:
        return item
    if not can_transition(item.status, target):
        raise InvalidTransitionError(item.item_id, item.status.value, target.value)

    update: dict = {"status": target}
    if target == ChecklistStatus.UNABLE_TO_ASSESS:
        if reason not in UNABLE_TO_ASSESS_REASONS:
            raise InvalidReasonError(reason, UNABLE_TO_ASSESS_REASONS)
        update.update(
            unable_to_assess_reason=reason,
            unable_to_assess_note=note,
            completed_at=at or utcnow(),
            completed_by=actor,
        )
    elif target == ChecklistStatus.COMPLETE:
        update.update(completed_at=at or utcnow(), completed_by=actor)

    return item.model_copy(update=update)


def round_half_up(value: float) -> int:
    # The epsilon absorbs float error such as 80.4999999 from weighted sums
    return math.floor(value + 0.5 + 1e-9)


def percentage(numerator: int, denominator: int, empty: int) -> int:
    """Integer percentage rounded half up, or ``empty`` when there is nothing to count."""
    if denominator == 0:
        return empty
    return round_half_up(100 * numerator / denominator)


def item_satisfied(item: ChecklistItem, exception_allowed: bool = True) -> bool:
    if item.status == ChecklistStatus.COMPLETE:
        return True
    return exception_allowed and item.status == ChecklistStatus.UNABLE_TO_ASSESS


@dataclass(frozen=True)
class ComponentStatus:
    """Whether one plan-pack component is satisfied for a visit."""

    label: str
    component_type: ChecklistItemType
    component_id: str | None
    required: bool
    satisfied: bool
    on_checklist: bool = True


def _find_item(rule: CompletenessRule, snapshot: VisitSnapshot) -> ChecklistItem | None:
    for item in snapshot.checklist:
        if item.item_type != rule.component_type:
            continue
        if rule.component_id is None or item.item_id == rule.component_id:
            return item
    return None


def _satisfied_without_item(rule: CompletenessRule, snapshot: VisitSnapshot) -> bool:
    """Satisfy a component from the clinical data when it has no checklist item."""
    if rule.component_type == ChecklistItemType.VITALS:
        return snapshot.vitals is not None
    if rule.component_type == ChecklistItemType.MEDICATION:
        return bool(snapshot.medications)
    if rule.component_type == ChecklistItemType.ASSESSMENT:
        response = snapshot.assessment(rule.component_id) if rule.component_id else None
        return response is not None and response.status == ChecklistStatus.COMPLETE.value
    if rule.component_type == ChecklistItemType.MEASURE:
        return any(
            m.measure_id == rule.component_id and m.status == ChecklistStatus.COMPLETE.value
            for m in snapshot.measures
        )
    return False


class CompletionGate:
    """Evaluate plan-pack components and the finalize gate for a visit."""

    def __init__(self, config: RuleConfiguration):
        self.config = config

    def components(self, snapshot: VisitSnapshot) -> list[ComponentStatus]:
        """
        Status of every component the visit is measured against.

        Components come from the plan pack's completeness rules. Checklist
        items no rule covers are treated as required with exceptions allowed.
        """
        statuses = []
        covered: set[str] = set()

        for rule in self.config.get_completeness_rules(snapshot.visit.plan_id):
            item = _find_item(rule, snapshot)
            if item is not None:
                covered.add(item.id)
                satisfied = item_satisfied(item, rule.exception_allowed)
            else:
                satisfied = _satisfied_without_item(rule, snapshot)
            statuses.append(
                ComponentStatus(
                    label=rule.label,
                    component_type=rule.component_type,
                    component_id=rule.component_id,
                    required=rule.required,
                    satisfied=satisfied,
                    on_checklist=item is not None,
                )
            )

        for item in snapshot.checklist:
            if item.id in covered:
                continue
            statuses.append(
                ComponentStatus(
                    label=item.item_name,
                    component_type=item.item_type,
                    component_id=item.item_id,
                    required=True,
                    satisfied=item_satisfied(item),
                )
            )

        return statuses

    def completeness_score(self, snapshot: VisitSnapshot) -> tuple[int, list[str]]:
        """
        Percentage of required components satisfied.

        Returns:
            The score (100 when nothing is required) and the labels of the
            unsatisfied required components
        """
        required = [c for c in self.components(snapshot) if c.required]
        missing = [c.label for c in required if not c.satisfied]
        return percentage(len(required) - len(missing), len(required), empty=100), missing

    def check(self, snapshot: VisitSnapshot) -> FinalizeGateResult:
        """Decide whether the visit can be finalized, listing each unmet requirement."""
        visit = snapshot.visit
        failing: list[str] = []

        if not visit.identity_verified:
            failing.append(IDENTITY_NOT_VERIFIED)
        if snapshot.vitals is None:
            failing.append(VITALS_NOT_RECORDED)
        if not any(code.code_type == CodeType.ICD10 for code in snapshot.active_codes()):
            failing.append(NO_ACTIVE_DIAGNOSIS)

        for component in self.components(snapshot):
            if not component.on_checklist or not component.required or component.satisfied:
                continue
            # Already reported above
            if component.component_type == ChecklistItemType.VITALS and snapshot.vitals is None:
                continue
            failing.append(component.label)

        ready = not failing
        logger.debug(
            f"Finalize gate {'met' if ready else 'unmet'}",
            visit_id=visit.id,
            failing=len(failing),
        )
        return FinalizeGateResult(visit_id=visit.id, ready_for_finalize=ready, failing_items=failing)
