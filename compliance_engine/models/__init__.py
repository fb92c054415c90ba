"""
Pydantic models for the visit compliance engine.

This module contains models for:
- Visits, vitals, assessments, measures, labs and medications
- Checklists, plan packs and completeness rules
- CDS trigger rules and recommendations
- Visit codes and diagnosis evidence
- Billing readiness results
"""

from compliance_engine.models.checklist import (
    UNABLE_TO_ASSESS_REASONS,
    ChecklistItem,
    ChecklistItemType,
    ChecklistStatus,
    CompletenessRule,
    FinalizeGateResult,
    PlanPack,
)
from compliance_engine.models.coding import (
    CodeKey,
    CodeType,
    DiagnosisEvidenceResult,
    DiagnosisEvidenceRule,
    EvidenceItemResult,
    EvidenceRequirement,
    EvidenceStatus,
    EvidenceType,
    VisitCode,
)
from compliance_engine.models.readiness import (
    BillingReadinessResult,
    FailReason,
    FailReasonSeverity,
    GateResult,
)
from compliance_engine.models.rules import (
    RECOMMENDATION_DISMISS_REASONS,
    AnyOfCondition,
    AssessmentScoreCondition,
    ComparisonOperator,
    Recommendation,
    RecommendationStatus,
    ThresholdCondition,
    TriggerRule,
    TriggerSource,
)
from compliance_engine.models.visit import (
    AssessmentResponse,
    ClinicalNote,
    FinalizeResult,
    LabResult,
    MeasureResult,
    MedReconciliationEntry,
    ReviewDecision,
    ReviewDecisionType,
    Visit,
    VisitSnapshot,
    VisitStatus,
    VisitType,
    VitalsRecord,
)

__all__ = [
    "AnyOfCondition",
    "AssessmentResponse",
    "AssessmentScoreCondition",
    "BillingReadinessResult",
    "ChecklistItem",
    "ChecklistItemType",
    "ChecklistStatus",
    "ClinicalNote",
    "CodeKey",
    "CodeType",
    "ComparisonOperator",
    "CompletenessRule",
    "DiagnosisEvidenceResult",
    "DiagnosisEvidenceRule",
    "EvidenceItemResult",
    "EvidenceRequirement",
    "EvidenceStatus",
    "EvidenceType",
    "FailReason",
    "FailReasonSeverity",
    "FinalizeGateResult",
    "FinalizeResult",
    "GateResult",
    "LabResult",
    "MeasureResult",
    "MedReconciliationEntry",
    "PlanPack",
    "RECOMMENDATION_DISMISS_REASONS",
    "Recommendation",
    "RecommendationStatus",
    "ReviewDecision",
    "ReviewDecisionType",
    "ThresholdCondition",
    "TriggerRule",
    "TriggerSource",
    "UNABLE_TO_ASSESS_REASONS",
    "Visit",
    "VisitCode",
    "VisitSnapshot",
    "VisitStatus",
    "VisitType",
    "VitalsRecord",
]
