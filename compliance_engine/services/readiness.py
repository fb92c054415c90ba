"""
Billing readiness operations.

Scoring overwrites the visit's stored result and therefore clears any
earlier override. Overrides change only the gate outcome, never the scores.
"""

from compliance_engine.audit import AuditEvent, audit_log
from compliance_engine.config.logging import get_logger
from compliance_engine.config.rules import RuleConfiguration, get_rule_config
from compliance_engine.config.settings import get_settings
from compliance_engine.engine.readiness import ReadinessScoringEngine, ScoreWeights, apply_override
from compliance_engine.errors import (
    OverrideNotAllowedError,
    OverrideReasonRequiredError,
    ReadinessResultNotFoundError,
)
from compliance_engine.models import BillingReadinessResult
from compliance_engine.store import VisitStore, get_visit_store

logger = get_logger(__name__)

NOT_SCORED = "not_scored"


def _scoring_engine(config: RuleConfiguration | None) -> ReadinessScoringEngine:
    settings = get_settings()
    return ReadinessScoringEngine(
        config or get_rule_config(),
        weights=ScoreWeights.from_settings(settings),
        pass_threshold=settings.readiness_pass_threshold,
    )


async def score_readiness(
    visit_id: str,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
    config: RuleConfiguration | None = None,
) -> BillingReadinessResult:
    """
    Score a visit's billing readiness and store the result.

    Raises:
        VisitNotFoundError: If the visit does not exist
    """
    store = store or get_visit_store()
    snapshot = await store.get_snapshot(visit_id)

    previous = await store.get_readiness(visit_id)
    result = _scoring_engine(config).score(snapshot)
    await store.save_readiness(result)

    audit_log(
        AuditEvent.BILLING_SCORED,
        visit_id=visit_id,
        user_id=user_id,
        details={
            "overall_score": result.overall_score,
            "gate_result": result.gate_result.value,
            "fail_reasons": [reason.code for reason in result.fail_reasons],
            "cleared_override": bool(previous and previous.override_reason),
        },
    )
    return result


async def get_readiness(visit_id: str, *, store: VisitStore | None = None) -> BillingReadinessResult:
    """
    Get the last stored readiness result.

    Raises:
        VisitNotFoundError: If the visit does not exist
        ReadinessResultNotFoundError: If the visit has never been scored
    """
    store = store or get_visit_store()
    await store.require_visit(visit_id)
    result = await store.get_readiness(visit_id)
    if result is None:
        raise ReadinessResultNotFoundError(visit_id)
    return result


async def override_gate(
    visit_id: str,
    reason: str | None,
    *,
    user_id: str,
    store: VisitStore | None = None,
) -> BillingReadinessResult:
    """
    Override a failing billing gate.

    Raises:
        OverrideReasonRequiredError: If the reason is missing or blank
        OverrideNotAllowedError: If the visit is unscored or its gate is not failing
    """
    store = store or get_visit_store()
    await store.require_visit(visit_id)

    if not reason or not reason.strip():
        audit_log(
            AuditEvent.BILLING_OVERRIDE,
            visit_id=visit_id,
            user_id=user_id,
            success=False,
            error="override reason required",
        )
        raise OverrideReasonRequiredError(visit_id)

    current = await store.get_readiness(visit_id)
    if current is None:
        raise OverrideNotAllowedError(visit_id, NOT_SCORED)

    try:
        result = apply_override(current, reason, user_id)
    except OverrideNotAllowedError as e:
        audit_log(
            AuditEvent.BILLING_OVERRIDE,
            visit_id=visit_id,
            user_id=user_id,
            success=False,
            error=e.message,
        )
        raise

    await store.save_readiness(result)

    audit_log(
        AuditEvent.BILLING_OVERRIDE,
        visit_id=visit_id,
        user_id=user_id,
        details={
            "overall_score": result.overall_score,
            "override_reason": result.override_reason,
        },
    )
    logger.info("Billing gate overridden", visit_id=visit_id, override_by=user_id)
    return result
