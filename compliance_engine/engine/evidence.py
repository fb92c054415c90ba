"""
Diagnosis evidence validation.

Each active ICD-10 code is checked against its evidence rule. Codes are
validated independently; an error while checking one code yields
``no_rule`` for that code and the rest of the batch carries on.
"""

from compliance_engine.config.logging import get_logger
from compliance_engine.config.rules import RuleConfiguration
from compliance_engine.models.coding import (
    CodeType,
    DiagnosisEvidenceResult,
    EvidenceItemResult,
    EvidenceRequirement,
    EvidenceStatus,
    EvidenceType,
    VisitCode,
)
from compliance_engine.models.visit import VisitSnapshot

logger = get_logger(__name__)

COMPLETE = "complete"


def classify(items: list[EvidenceItemResult]) -> EvidenceStatus:
    """All items met is supported, none met is unsupported, anything else partial."""
    met = sum(1 for item in items if item.met)
    if met == len(items):
        return EvidenceStatus.SUPPORTED
    if met == 0:
        return EvidenceStatus.UNSUPPORTED
    return EvidenceStatus.PARTIAL


def _vitals_present(requirement: EvidenceRequirement, snapshot: VisitSnapshot) -> bool:
    if snapshot.vitals is None or not requirement.field:
        return False
    return snapshot.vitals.measurements().get(requirement.field) is not None


def _lab_present(requirement: EvidenceRequirement, snapshot: VisitSnapshot) -> bool:
    if not requirement.test_name:
        return False
    wanted = requirement.test_name.lower()
    return any(lab.test_name.lower() == wanted for lab in snapshot.labs)


def _medication_present(requirement: EvidenceRequirement, snapshot: VisitSnapshot) -> bool:
    term = (requirement.keyword or requirement.description).lower()
    return any(term in entry.searchable_text() for entry in snapshot.medications)


def _assessment_present(requirement: EvidenceRequirement, snapshot: VisitSnapshot) -> bool:
    return any(
        response.instrument_id == requirement.instrument_id and response.status == COMPLETE
        for response in snapshot.assessments
    )


_CHECKS = {
    EvidenceType.VITALS: _vitals_present,
    EvidenceType.LAB: _lab_present,
    EvidenceType.MEDICATION: _medication_present,
    EvidenceType.ASSESSMENT: _assessment_present,
}


class EvidenceValidationEngine:
    """Classify how well each active diagnosis is supported by clinical data."""

    def __init__(self, config: RuleConfiguration):
        self.config = config

    def validate(self, snapshot: VisitSnapshot) -> list[DiagnosisEvidenceResult]:
        """
        Validate every active ICD-10 code on the visit.

        Returns:
            One result per active ICD-10 code, in code order
        """
        results = []
        for code in snapshot.active_codes():
            if code.code_type != CodeType.ICD10:
                continue
            try:
                results.append(self.validate_code(code, snapshot))
            except Exception as e:
                logger.warning(
                    f"Evidence check failed for {code.code}",
                    visit_id=snapshot.visit_id,
                    error=str(e),
                )
                results.append(self._no_rule(code))
        return results

    def validate_code(self, code: VisitCode, snapshot: VisitSnapshot) -> DiagnosisEvidenceResult:
        rule = self.config.get_evidence_rule(code.code)
        if rule is None:
            return self._no_rule(code)

        items = [
            EvidenceItemResult(
                type=requirement.type,
                description=requirement.description,
                met=_CHECKS[requirement.type](requirement, snapshot),
            )
            for requirement in rule.required_evidence
        ]
        return DiagnosisEvidenceResult(
            code_id=code.id,
            icd_code=code.code,
            description=code.description,
            category=rule.category,
            status=classify(items),
            items=items,
        )

    @staticmethod
    def _no_rule(code: VisitCode) -> DiagnosisEvidenceResult:
        return DiagnosisEvidenceResult(
            code_id=code.id,
            icd_code=code.code,
            description=code.description,
            status=EvidenceStatus.NO_RULE,
        )
