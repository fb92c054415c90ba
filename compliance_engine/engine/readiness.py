"""
Billing readiness scoring.

overall = round(w_c * completeness + w_d * diagnosis_support + w_k * coding_compliance)

with default weights 0.40 / 0.35 / 0.25, rounded half up and clamped to
0..100. The three sub-scores round half up the same way. The gate passes
at or above the pass threshold (80). A failing gate can be overridden with a
reason; scoring again always clears the override.
"""

from dataclasses import dataclass
from datetime import datetime

from compliance_engine.config.logging import get_logger
from compliance_engine.config.rules import RuleConfiguration
from compliance_engine.config.settings import Settings
from compliance_engine.engine.completion import CompletionGate, percentage, round_half_up
from compliance_engine.engine.evidence import EvidenceValidationEngine
from compliance_engine.errors import OverrideNotAllowedError, OverrideReasonRequiredError
from compliance_engine.models.coding import DiagnosisEvidenceResult, EvidenceStatus
from compliance_engine.models.common import utcnow
from compliance_engine.models.readiness import (
    BillingReadinessResult,
    FailReason,
    FailReasonSeverity,
    GateResult,
)
from compliance_engine.models.visit import VisitSnapshot

logger = get_logger(__name__)


class Dimensions:
    """Score dimension names used in fail reasons."""

    COMPLETENESS = "completeness"
    DIAGNOSIS_SUPPORT = "diagnosis_support"
    CODING_COMPLIANCE = "coding_compliance"


@dataclass(frozen=True)
class ScoreWeights:
    completeness: float = 0.40
    diagnosis_support: float = 0.35
    coding_compliance: float = 0.25

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScoreWeights":
        return cls(
            completeness=settings.completeness_weight,
            diagnosis_support=settings.diagnosis_support_weight,
            coding_compliance=settings.coding_compliance_weight,
        )


DEFAULT_WEIGHTS = ScoreWeights()
DEFAULT_PASS_THRESHOLD = 80


def overall_score(
    completeness: int,
    diagnosis_support: int,
    coding_compliance: int,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> int:
    weighted = (
        weights.completeness * completeness
        + weights.diagnosis_support * diagnosis_support
        + weights.coding_compliance * coding_compliance
    )
    return max(0, min(100, round_half_up(weighted)))


class ReadinessScoringEngine:
    """Compute the composite billing readiness score for a visit."""

    def __init__(
        self,
        config: RuleConfiguration,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
        pass_threshold: int = DEFAULT_PASS_THRESHOLD,
    ):
        self.config = config
        self.weights = weights
        self.pass_threshold = pass_threshold
        self.gate = CompletionGate(config)
        self.evidence = EvidenceValidationEngine(config)

    def score(
        self,
        snapshot: VisitSnapshot,
        evidence_results: list[DiagnosisEvidenceResult] | None = None,
        now: datetime | None = None,
    ) -> BillingReadinessResult:
        """
        Score a visit.

        Args:
            snapshot: Visit snapshot
            evidence_results: Evidence results if already computed
            now: Evaluation time

        Returns:
            A fresh result with no override applied
        """
        if evidence_results is None:
            evidence_results = self.evidence.validate(snapshot)

        completeness, missing = self.gate.completeness_score(snapshot)

        ruled = [r for r in evidence_results if r.status != EvidenceStatus.NO_RULE]
        supported = [r for r in ruled if r.status == EvidenceStatus.SUPPORTED]
        diagnosis_support = percentage(len(supported), len(ruled), empty=100)

        active = snapshot.active_codes()
        verified = [code for code in active if code.verified]
        coding_compliance = percentage(len(verified), len(active), empty=0)

        overall = overall_score(completeness, diagnosis_support, coding_compliance, self.weights)
        gate_result = GateResult.PASS if overall >= self.pass_threshold else GateResult.FAIL

        fail_reasons = self._fail_reasons(
            completeness=completeness,
            missing=missing,
            diagnosis_support=diagnosis_support,
            unsupported=[r for r in ruled if r.status != EvidenceStatus.SUPPORTED],
            coding_compliance=coding_compliance,
            active_count=len(active),
            verified_count=len(verified),
        )

        logger.info(
            f"Scored visit at {overall} ({gate_result.value})",
            visit_id=snapshot.visit_id,
            completeness=completeness,
            diagnosis_support=diagnosis_support,
            coding_compliance=coding_compliance,
        )

        return BillingReadinessResult(
            visit_id=snapshot.visit_id,
            completeness_score=completeness,
            diagnosis_support_score=diagnosis_support,
            coding_compliance_score=coding_compliance,
            overall_score=overall,
            gate_result=gate_result,
            fail_reasons=fail_reasons,
            evaluated_at=now or utcnow(),
        )

    def _fail_reasons(
        self,
        *,
        completeness: int,
        missing: list[str],
        diagnosis_support: int,
        unsupported: list[DiagnosisEvidenceResult],
        coding_compliance: int,
        active_count: int,
        verified_count: int,
    ) -> list[FailReason]:
        reasons: list[FailReason] = []

        if completeness < self.pass_threshold:
            reasons.append(
                FailReason(
                    code="INCOMPLETE_DOCUMENTATION",
                    severity=FailReasonSeverity.ERROR,
                    description=f"Completeness {completeness}% is below {self.pass_threshold}%. "
                    f"Missing: {', '.join(missing)}",
                    dimension=Dimensions.COMPLETENESS,
                )
            )

        if diagnosis_support < self.pass_threshold:
            reasons.append(
                FailReason(
                    code="LOW_DIAGNOSIS_SUPPORT",
                    severity=FailReasonSeverity.WARNING,
                    description=f"Diagnosis support {diagnosis_support}% is below {self.pass_threshold}%",
                    dimension=Dimensions.DIAGNOSIS_SUPPORT,
                )
            )
        for result in unsupported:
            reasons.append(
                FailReason(
                    code="UNSUPPORTED_DIAGNOSIS",
                    severity=FailReasonSeverity.WARNING,
                    description=f"{result.icd_code} is {result.status.value}: "
                    f"{result.met_count} of {len(result.items)} evidence items met",
                    dimension=Dimensions.DIAGNOSIS_SUPPORT,
                )
            )

        if active_count == 0:
            reasons.append(
                FailReason(
                    code="NO_ACTIVE_CODES",
                    severity=FailReasonSeverity.ERROR,
                    description="Visit has no active codes",
                    dimension=Dimensions.CODING_COMPLIANCE,
                )
            )
        elif verified_count == 0:
            reasons.append(
                FailReason(
                    code="NO_VERIFIED_CODES",
                    severity=FailReasonSeverity.ERROR,
                    description="None of the visit's codes have been verified",
                    dimension=Dimensions.CODING_COMPLIANCE,
                )
            )
        elif coding_compliance < self.pass_threshold:
            reasons.append(
                FailReason(
                    code="UNVERIFIED_CODES",
                    severity=FailReasonSeverity.WARNING,
                    description=f"Only {verified_count} of {active_count} codes verified "
                    f"({coding_compliance}%)",
                    dimension=Dimensions.CODING_COMPLIANCE,
                )
            )

        return reasons


def apply_override(
    result: BillingReadinessResult,
    reason: str | None,
    override_by: str,
    now: datetime | None = None,
) -> BillingReadinessResult:
    """
    Override a failing gate. Scores are left untouched.

    Raises:
        OverrideReasonRequiredError: If the reason is missing or blank
        OverrideNotAllowedError: If the gate is not currently failing
    """
    if not reason or not reason.strip():
        raise OverrideReasonRequiredError(result.visit_id)
    if result.gate_result != GateResult.FAIL:
        raise OverrideNotAllowedError(result.visit_id, result.gate_result.value)

    return result.model_copy(
        update={
            "gate_result": GateResult.OVERRIDE,
            "override_reason": reason.strip(),
            "override_by": override_by,
            "overridden_at": now or utcnow(),
        }
    )
