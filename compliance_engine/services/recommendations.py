"""
CDS recommendation operations.

Evaluates trigger rules for a visit event, persists newly fired
recommendations and manages their dismiss/resolve lifecycle.
"""

from collections.abc import Mapping
from typing import Any

from compliance_engine.audit import AuditEvent, audit_log
from compliance_engine.config.logging import get_logger
from compliance_engine.config.rules import RuleConfiguration, get_rule_config
from compliance_engine.engine.triggers import TriggerRuleEngine, assessment_event, vitals_event
from compliance_engine.errors import RecommendationNotFoundError, RecommendationStateError
from compliance_engine.models import (
    RECOMMENDATION_DISMISS_REASONS,
    Recommendation,
    RecommendationStatus,
    TriggerSource,
    VisitSnapshot,
)
from compliance_engine.models.common import utcnow
from compliance_engine.store import VisitStore, get_visit_store
from compliance_engine.validation import validate_reason

logger = get_logger(__name__)

COMPLETE = "complete"


def _snapshot_events(snapshot: VisitSnapshot, source: TriggerSource) -> list[dict[str, Any]]:
    """Events to evaluate when the caller supplies no event data."""
    if source == TriggerSource.VITALS:
        return [vitals_event(snapshot.vitals)] if snapshot.vitals else []
    return [
        assessment_event(response)
        for response in snapshot.assessments
        if response.status == COMPLETE and response.computed_score is not None
    ]


async def evaluate_triggers(
    visit_id: str,
    source: TriggerSource,
    event_data: Mapping[str, Any] | None = None,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
    config: RuleConfiguration | None = None,
) -> list[Recommendation]:
    """
    Evaluate trigger rules for one visit event.

    Args:
        visit_id: Visit ID
        source: Trigger source (vitals or assessment)
        event_data: Event payload; derived from the stored visit data if omitted
        user_id: Acting user, for the audit trail

    Returns:
        Recommendations that fired for the first time on this visit

    Raises:
        VisitNotFoundError: If the visit does not exist
    """
    store = store or get_visit_store()
    engine = TriggerRuleEngine(config or get_rule_config())

    snapshot = await store.get_snapshot(visit_id)
    events = [dict(event_data)] if event_data is not None else _snapshot_events(snapshot, source)

    candidates: list[Recommendation] = []
    existing = list(snapshot.recommendations)
    for event in events:
        fired = engine.evaluate(visit_id, source, event, existing=existing)
        candidates.extend(fired)
        existing.extend(fired)

    inserted = await store.add_recommendations(visit_id, candidates)

    for rec in inserted:
        audit_log(
            AuditEvent.RECOMMENDATION_TRIGGERED,
            visit_id=visit_id,
            user_id=user_id,
            record_type="recommendation",
            record_id=rec.id,
            details={"rule_id": rec.rule_id, "source": source.value, "priority": rec.priority},
        )

    logger.info(
        f"Evaluated {source.value} triggers: {len(inserted)} new recommendations",
        visit_id=visit_id,
    )
    return inserted


async def list_recommendations(
    visit_id: str, *, store: VisitStore | None = None
) -> list[Recommendation]:
    """List a visit's recommendations, raising if the visit does not exist."""
    store = store or get_visit_store()
    await store.require_visit(visit_id)
    return await store.list_recommendations(visit_id)


async def _get_pending(store: VisitStore, visit_id: str, recommendation_id: str) -> Recommendation:
    await store.require_visit(visit_id)
    for rec in await store.list_recommendations(visit_id):
        if rec.id == recommendation_id:
            if rec.status != RecommendationStatus.PENDING:
                raise RecommendationStateError(recommendation_id, rec.status.value)
            return rec
    raise RecommendationNotFoundError(visit_id, recommendation_id)


async def dismiss_recommendation(
    visit_id: str,
    recommendation_id: str,
    reason: str,
    note: str | None = None,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
) -> Recommendation:
    """
    Dismiss a pending recommendation with a structured reason.

    Raises:
        InvalidReasonError: If the reason is not an allowed dismiss reason
        RecommendationNotFoundError: If the recommendation does not exist
        RecommendationStateError: If the recommendation is not pending
    """
    store = store or get_visit_store()
    validate_reason(reason, RECOMMENDATION_DISMISS_REASONS, field="dismiss_reason")

    rec = await _get_pending(store, visit_id, recommendation_id)
    updated = rec.model_copy(
        update={
            "status": RecommendationStatus.DISMISSED,
            "dismiss_reason": reason,
            "dismiss_note": note,
            "resolved_at": utcnow(),
        }
    )
    await store.save_recommendation(updated)

    audit_log(
        AuditEvent.RECOMMENDATION_DISMISSED,
        visit_id=visit_id,
        user_id=user_id,
        record_type="recommendation",
        record_id=recommendation_id,
        details={"rule_id": rec.rule_id, "reason": reason},
    )
    return updated


async def resolve_recommendation(
    visit_id: str,
    recommendation_id: str,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
) -> Recommendation:
    """
    Mark a pending recommendation as resolved.

    Raises:
        RecommendationNotFoundError: If the recommendation does not exist
        RecommendationStateError: If the recommendation is not pending
    """
    store = store or get_visit_store()

    rec = await _get_pending(store, visit_id, recommendation_id)
    updated = rec.model_copy(
        update={"status": RecommendationStatus.RESOLVED, "resolved_at": utcnow()}
    )
    await store.save_recommendation(updated)

    audit_log(
        AuditEvent.RECOMMENDATION_RESOLVED,
        visit_id=visit_id,
        user_id=user_id,
        record_type="recommendation",
        record_id=recommendation_id,
        details={"rule_id": rec.rule_id},
    )
    return updated
