"""
Checklist operations.

Checklists are provisioned from the visit's plan pack. Items then move
through the completion state machine as clinical data is recorded, or are
closed out explicitly as unable to assess. Recording vitals or a completed
assessment also runs the matching trigger rules.
"""

from compliance_engine.audit import AuditEvent, audit_log
from compliance_engine.config.defaults import get_component_name
from compliance_engine.config.logging import get_logger
from compliance_engine.config.rules import RuleConfiguration, get_rule_config
from compliance_engine.engine.completion import transition
from compliance_engine.engine.triggers import assessment_event, vitals_event
from compliance_engine.errors import (
    ChecklistItemNotFoundError,
    PlanPackNotFoundError,
    VisitConflictError,
)
from compliance_engine.models import (
    AssessmentResponse,
    ChecklistItem,
    ChecklistItemType,
    ChecklistStatus,
    MeasureResult,
    Recommendation,
    TriggerSource,
    Visit,
    VisitStatus,
    VitalsRecord,
)
from compliance_engine.models.common import utcnow
from compliance_engine.services.recommendations import evaluate_triggers
from compliance_engine.store import VisitStore, get_visit_store

logger = get_logger(__name__)

EDITABLE_STATUSES = frozenset({VisitStatus.SCHEDULED, VisitStatus.IN_PROGRESS})
COMPLETE = ChecklistStatus.COMPLETE.value


def ensure_editable(visit: Visit, operation: str) -> None:
    """
    Reject clinical data changes once a visit has been signed.

    Raises:
        VisitConflictError: If the visit is ready for review or finalized
    """
    if visit.status not in EDITABLE_STATUSES:
        raise VisitConflictError(visit.id, visit.status.value, operation)


async def _complete_items(
    store: VisitStore,
    visit_id: str,
    item_type: ChecklistItemType,
    item_id: str | None = None,
    user_id: str | None = None,
) -> list[ChecklistItem]:
    """Move matching open checklist items to complete."""
    completed = []
    for item in await store.list_checklist(visit_id):
        if item.item_type != item_type or (item_id is not None and item.item_id != item_id):
            continue
        if item.is_terminal:
            logger.debug(f"Checklist item {item.item_id} already {item.status.value}", visit_id=visit_id)
            continue
        completed.append(transition(item, ChecklistStatus.COMPLETE, actor=user_id))

    if completed:
        await store.save_checklist_items(visit_id, completed)
        for item in completed:
            audit_log(
                AuditEvent.CHECKLIST_UPDATED,
                visit_id=visit_id,
                user_id=user_id,
                record_type="checklist_item",
                record_id=item.id,
                details={"item_id": item.item_id, "status": item.status.value},
            )
    return completed


async def provision_checklist(
    visit_id: str,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
    config: RuleConfiguration | None = None,
) -> list[ChecklistItem]:
    """
    Create the visit's checklist from its plan pack.

    Provisioning is idempotent: components that already have an item are
    skipped.

    Returns:
        The visit's full checklist

    Raises:
        VisitNotFoundError: If the visit does not exist
        PlanPackNotFoundError: If the visit's plan pack is unknown or inactive
    """
    store = store or get_visit_store()
    config = config or get_rule_config()

    visit = await store.require_visit(visit_id)
    pack = config.get_plan_pack(visit.plan_id)
    if pack is None or not pack.active:
        raise PlanPackNotFoundError(visit.plan_id)

    existing = await store.list_checklist(visit_id)
    present = {(item.item_type, item.item_id) for item in existing}

    new_items = []
    for item_type, component_ids in (
        (ChecklistItemType.ASSESSMENT, pack.required_assessments),
        (ChecklistItemType.MEASURE, pack.required_measures),
    ):
        for component_id in component_ids:
            if (item_type, component_id) in present:
                continue
            present.add((item_type, component_id))
            new_items.append(
                ChecklistItem(
                    visit_id=visit_id,
                    item_type=item_type,
                    item_id=component_id,
                    item_name=get_component_name(component_id),
                )
            )

    if new_items:
        await store.save_checklist_items(visit_id, new_items)

    audit_log(
        AuditEvent.CHECKLIST_PROVISIONED,
        visit_id=visit_id,
        user_id=user_id,
        details={"plan_id": pack.plan_id, "created": len(new_items), "existing": len(existing)},
    )
    return existing + new_items


async def get_checklist(visit_id: str, *, store: VisitStore | None = None) -> list[ChecklistItem]:
    store = store or get_visit_store()
    await store.require_visit(visit_id)
    return await store.list_checklist(visit_id)


async def record_vitals(
    visit_id: str,
    vitals: VitalsRecord,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
    config: RuleConfiguration | None = None,
) -> tuple[VitalsRecord, list[Recommendation]]:
    """
    Record (or replace) the visit's vitals.

    Completes any vitals checklist item, starts a scheduled visit and runs
    the vitals trigger rules.

    Returns:
        The stored vitals and any newly triggered recommendations
    """
    store = store or get_visit_store()
    visit = await store.require_visit(visit_id)
    ensure_editable(visit, "record vitals")

    existing = await store.get_vitals(visit_id)
    record = vitals.model_copy(
        update={
            "visit_id": visit_id,
            "id": existing.id if existing else vitals.id,
            "recorded_by": vitals.recorded_by or user_id,
        }
    )
    await store.save_vitals(record)
    await _complete_items(store, visit_id, ChecklistItemType.VITALS, user_id=user_id)

    if visit.status == VisitStatus.SCHEDULED:
        await store.update_visit_status(visit_id, {VisitStatus.SCHEDULED}, VisitStatus.IN_PROGRESS)

    triggered = await evaluate_triggers(
        visit_id,
        TriggerSource.VITALS,
        vitals_event(record),
        user_id=user_id,
        store=store,
        config=config,
    )
    return record, triggered


async def record_assessment(
    visit_id: str,
    response: AssessmentResponse,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
    config: RuleConfiguration | None = None,
) -> tuple[AssessmentResponse, list[Recommendation]]:
    """
    Record (or replace) an assessment response.

    A complete response completes its checklist item and, when scored, runs
    the assessment trigger rules.

    Returns:
        The stored response and any newly triggered recommendations
    """
    store = store or get_visit_store()
    visit = await store.require_visit(visit_id)
    ensure_editable(visit, "record assessment")

    existing = {a.instrument_id: a for a in await store.list_assessments(visit_id)}
    previous = existing.get(response.instrument_id)
    is_complete = response.status == COMPLETE
    record = response.model_copy(
        update={
            "visit_id": visit_id,
            "id": previous.id if previous else response.id,
            "completed_at": (response.completed_at or utcnow()) if is_complete else None,
        }
    )
    await store.save_assessment(record)

    if not is_complete:
        return record, []

    await _complete_items(
        store, visit_id, ChecklistItemType.ASSESSMENT, record.instrument_id, user_id=user_id
    )
    if record.computed_score is None:
        return record, []

    triggered = await evaluate_triggers(
        visit_id,
        TriggerSource.ASSESSMENT,
        assessment_event(record),
        user_id=user_id,
        store=store,
        config=config,
    )
    return record, triggered


async def record_measure(
    visit_id: str,
    result: MeasureResult,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
) -> MeasureResult:
    """Record (or replace) a measure result; a complete result completes its checklist item."""
    store = store or get_visit_store()
    visit = await store.require_visit(visit_id)
    ensure_editable(visit, "record measure")

    existing = {m.measure_id: m for m in await store.list_measures(visit_id)}
    previous = existing.get(result.measure_id)
    is_complete = result.status == COMPLETE
    record = result.model_copy(
        update={
            "visit_id": visit_id,
            "id": previous.id if previous else result.id,
            "completed_at": (result.completed_at or utcnow()) if is_complete else None,
        }
    )
    await store.save_measure(record)

    if is_complete:
        await _complete_items(
            store, visit_id, ChecklistItemType.MEASURE, record.measure_id, user_id=user_id
        )
    return record


async def mark_unable_to_assess(
    visit_id: str,
    item_ref: str,
    reason: str,
    note: str | None = None,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
) -> ChecklistItem:
    """
    Close out a checklist item as unable to assess.

    Args:
        visit_id: Visit ID
        item_ref: Checklist item row ID, or its instrument/measure ID
        reason: One of the structured unable-to-assess reasons
        note: Optional free-text note

    Raises:
        ChecklistItemNotFoundError: If no checklist item matches
        InvalidReasonError: If the reason is not allowed
        InvalidTransitionError: If the item is already complete
    """
    store = store or get_visit_store()
    visit = await store.require_visit(visit_id)
    ensure_editable(visit, "mark unable to assess")

    item = next(
        (i for i in await store.list_checklist(visit_id) if item_ref in (i.id, i.item_id)),
        None,
    )
    if item is None:
        raise ChecklistItemNotFoundError(visit_id, item_ref)

    updated = transition(
        item, ChecklistStatus.UNABLE_TO_ASSESS, reason=reason, note=note, actor=user_id
    )
    if updated is not item:
        await store.save_checklist_items(visit_id, [updated])
        audit_log(
            AuditEvent.CHECKLIST_UNABLE_TO_ASSESS,
            visit_id=visit_id,
            user_id=user_id,
            record_type="checklist_item",
            record_id=item.id,
            details={"item_id": item.item_id, "reason": reason},
        )
    return updated
