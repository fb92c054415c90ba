"""Diagnosis evidence validation for a visit's active ICD-10 codes."""

from compliance_engine.audit import AuditEvent, audit_log
from compliance_engine.config.logging import get_logger
from compliance_engine.config.rules import RuleConfiguration, get_rule_config
from compliance_engine.engine.evidence import EvidenceValidationEngine
from compliance_engine.models import DiagnosisEvidenceResult
from compliance_engine.store import VisitStore, get_visit_store

logger = get_logger(__name__)


async def validate_evidence(
    visit_id: str,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
    config: RuleConfiguration | None = None,
) -> list[DiagnosisEvidenceResult]:
    """
    Validate the evidence behind each active diagnosis on a visit.

    The per-item breakdown is returned to the caller, not stored.

    Raises:
        VisitNotFoundError: If the visit does not exist
    """
    store = store or get_visit_store()
    engine = EvidenceValidationEngine(config or get_rule_config())

    snapshot = await store.get_snapshot(visit_id)
    results = engine.validate(snapshot)

    counts: dict[str, int] = {}
    for result in results:
        counts[result.status.value] = counts.get(result.status.value, 0) + 1

    audit_log(
        AuditEvent.EVIDENCE_VALIDATED,
        visit_id=visit_id,
        user_id=user_id,
        details={"diagnoses": len(results), "by_status": counts},
    )
    return results
