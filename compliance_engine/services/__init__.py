"""
Service layer for the visit compliance engine.

Each operation loads a visit snapshot from the store, runs the engine,
writes derived artifacts back and records an audit event.
"""

from compliance_engine.services.checklist import (
    get_checklist,
    mark_unable_to_assess,
    provision_checklist,
    record_assessment,
    record_measure,
    record_vitals,
)
from compliance_engine.services.coding import (
    add_code,
    generate_codes,
    list_codes,
    remove_code,
    swap_code,
    verify_code,
)
from compliance_engine.services.evidence import validate_evidence
from compliance_engine.services.readiness import get_readiness, override_gate, score_readiness
from compliance_engine.services.recommendations import (
    dismiss_recommendation,
    evaluate_triggers,
    list_recommendations,
    resolve_recommendation,
)
from compliance_engine.services.visits import (
    check_finalize_gate,
    finalize_visit,
    submit_review,
    verify_identity,
)

__all__ = [
    "add_code",
    "check_finalize_gate",
    "dismiss_recommendation",
    "evaluate_triggers",
    "finalize_visit",
    "generate_codes",
    "get_checklist",
    "get_readiness",
    "list_codes",
    "list_recommendations",
    "mark_unable_to_assess",
    "override_gate",
    "provision_checklist",
    "record_assessment",
    "record_measure",
    "record_vitals",
    "remove_code",
    "resolve_recommendation",
    "score_readiness",
    "submit_review",
    "swap_code",
    "validate_evidence",
    "verify_code",
    "verify_identity",
]
