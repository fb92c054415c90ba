"""
Visit lifecycle operations: identity verification, the finalize gate,
finalization and supervisor review.

Status changes are compare-and-set writes. Of two concurrent finalize
requests exactly one succeeds; the other gets a VisitConflictError.
"""

from compliance_engine.audit import AuditEvent, audit_log
from compliance_engine.config.logging import bind_visit, get_logger
from compliance_engine.config.rules import RuleConfiguration, get_rule_config
from compliance_engine.engine.completion import CompletionGate
from compliance_engine.errors import VisitConflictError
from compliance_engine.models import (
    FinalizeGateResult,
    FinalizeResult,
    ReviewDecision,
    ReviewDecisionType,
    Visit,
    VisitStatus,
)
from compliance_engine.models.common import utcnow
from compliance_engine.services.checklist import EDITABLE_STATUSES
from compliance_engine.services.notes import build_clinical_note
from compliance_engine.store import VisitStore, get_visit_store
from compliance_engine.validation import require_text

logger = get_logger(__name__)


async def _conflict(store: VisitStore, visit_id: str, operation: str) -> VisitConflictError:
    current = await store.require_visit(visit_id)
    return VisitConflictError(visit_id, current.status.value, operation)


async def verify_identity(
    visit_id: str,
    method: str,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
) -> Visit:
    """
    Record that the member's identity was verified and start the visit.

    Raises:
        MissingRequiredFieldError: If no verification method is given
        VisitConflictError: If the visit has already been signed
    """
    store = store or get_visit_store()
    method = require_text(method, "method", "verify identity")

    updated = await store.update_visit_status(
        visit_id,
        EDITABLE_STATUSES,
        VisitStatus.IN_PROGRESS,
        {"identity_verified": True, "identity_method": method},
    )
    if updated is None:
        raise await _conflict(store, visit_id, "verify identity")

    audit_log(
        AuditEvent.VISIT_IDENTITY_VERIFIED,
        visit_id=visit_id,
        user_id=user_id,
        details={"method": method},
    )
    return updated


async def check_finalize_gate(
    visit_id: str,
    *,
    store: VisitStore | None = None,
    config: RuleConfiguration | None = None,
) -> FinalizeGateResult:
    """
    Evaluate the finalize gate without changing anything.

    Raises:
        VisitNotFoundError: If the visit does not exist
    """
    store = store or get_visit_store()
    snapshot = await store.get_snapshot(visit_id)
    return CompletionGate(config or get_rule_config()).check(snapshot)


async def finalize_visit(
    visit_id: str,
    signature: str,
    attestation_text: str | None = None,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
    config: RuleConfiguration | None = None,
) -> FinalizeResult:
    """
    Sign a visit and send it for review.

    When the finalize gate is unmet nothing is written and the failing
    requirement labels are returned. Otherwise the clinical note is
    generated and the visit moves to ready_for_review.

    Raises:
        MissingRequiredFieldError: If the signature is missing
        VisitNotFoundError: If the visit does not exist
        VisitConflictError: If the visit is already signed, including when a
            concurrent finalize wins the race
    """
    store = store or get_visit_store()
    signature = require_text(signature, "signature", "finalize")

    with bind_visit(visit_id, "finalize"):
        snapshot = await store.get_snapshot(visit_id)
        if snapshot.visit.status not in EDITABLE_STATUSES:
            raise VisitConflictError(visit_id, snapshot.visit.status.value, "finalize")

        gate = CompletionGate(config or get_rule_config()).check(snapshot)
        if not gate.ready_for_finalize:
            audit_log(
                AuditEvent.VISIT_FINALIZE_BLOCKED,
                visit_id=visit_id,
                user_id=user_id,
                success=False,
                details={"failing_items": gate.failing_items},
            )
            logger.info(f"Finalize blocked by {len(gate.failing_items)} items")
            return FinalizeResult(
                visit_id=visit_id, finalized=False, failing_items=gate.failing_items
            )

        note = build_clinical_note(snapshot, previous=await store.get_note(visit_id))
        now = utcnow()
        updated = await store.update_visit_status(
            visit_id,
            EDITABLE_STATUSES,
            VisitStatus.READY_FOR_REVIEW,
            {
                "signed_at": now,
                "signed_by": signature,
                "attestation_text": attestation_text,
                "finalized_at": now,
            },
        )
        if updated is None:
            conflict = await _conflict(store, visit_id, "finalize")
            audit_log(
                AuditEvent.VISIT_ERROR,
                visit_id=visit_id,
                user_id=user_id,
                success=False,
                error=conflict.message,
            )
            raise conflict

        await store.save_note(note)

        audit_log(
            AuditEvent.VISIT_FINALIZED,
            visit_id=visit_id,
            user_id=user_id,
            details={"signed_by": signature, "note_version": note.version},
        )
        return FinalizeResult(visit_id=visit_id, finalized=True, visit=updated, note=note)


async def submit_review(
    visit_id: str,
    reviewer_id: str,
    decision: ReviewDecisionType,
    comments: str | None = None,
    *,
    store: VisitStore | None = None,
) -> tuple[Visit, ReviewDecision]:
    """
    Record a supervisor's review of a signed visit.

    Approval finalizes the visit. A correction request reopens it and clears
    the signature so it must be signed again.

    Raises:
        VisitConflictError: If the visit is not ready for review
    """
    store = store or get_visit_store()
    reviewer_id = require_text(reviewer_id, "reviewer_id", "review")

    if decision == ReviewDecisionType.APPROVE:
        updated = await store.update_visit_status(
            visit_id, {VisitStatus.READY_FOR_REVIEW}, VisitStatus.FINALIZED
        )
    else:
        updated = await store.update_visit_status(
            visit_id,
            {VisitStatus.READY_FOR_REVIEW},
            VisitStatus.IN_PROGRESS,
            {"signed_at": None, "signed_by": None, "attestation_text": None, "finalized_at": None},
        )
    if updated is None:
        raise await _conflict(store, visit_id, "review")

    review = ReviewDecision(
        visit_id=visit_id, reviewer_id=reviewer_id, decision=decision, comments=comments
    )
    await store.add_review(review)

    audit_log(
        AuditEvent.VISIT_REVIEWED,
        visit_id=visit_id,
        user_id=reviewer_id,
        record_type="review",
        record_id=review.id,
        details={"decision": decision.value, "status": updated.status.value},
    )
    return updated, review
