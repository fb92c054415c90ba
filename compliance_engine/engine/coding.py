"""
Deterministic visit code generation.

Codes are derived in a fixed order and deduplicated on (code_type, code),
first occurrence wins:

1. Base codes for the visit type
2. Vitals-derived diagnoses (hypertension, obesity, overweight)
3. Codes for completed checklist items, plus a depression diagnosis for a
   positive depression screen

The result is the complete code set that replaces the visit's codes.
"""

from collections.abc import Iterable
from typing import NamedTuple

from compliance_engine.config.defaults import (
    CHECKLIST_CODES,
    CODE_SOURCES,
    DEPRESSION_CODE,
    DEPRESSION_SCORE_THRESHOLD,
    DEPRESSION_SCREENS,
    HYPERTENSION_CODE,
    OBESITY_CODE,
    OVERWEIGHT_CODE,
    VITALS_THRESHOLDS,
    CodeTemplate,
    get_base_codes,
)
from compliance_engine.config.logging import get_logger
from compliance_engine.models.checklist import ChecklistItemType, ChecklistStatus
from compliance_engine.models.coding import CodeKey, VisitCode
from compliance_engine.models.visit import VisitSnapshot, VitalsRecord

logger = get_logger(__name__)


class CandidateCode(NamedTuple):
    """A code template with the source that produced it."""

    template: CodeTemplate
    source: str

    @property
    def key(self) -> CodeKey:
        return CodeKey(self.template.code_type, self.template.code)


def base_codes(visit_type: str) -> list[CandidateCode]:
    return [CandidateCode(t, CODE_SOURCES.VISIT_TYPE) for t in get_base_codes(visit_type)]


def vitals_codes(vitals: VitalsRecord | None) -> list[CandidateCode]:
    if vitals is None:
        return []

    codes = []
    if vitals.systolic is not None and vitals.systolic >= VITALS_THRESHOLDS.HYPERTENSION_SYSTOLIC:
        codes.append(CandidateCode(HYPERTENSION_CODE, CODE_SOURCES.VITALS))
    if vitals.bmi is not None:
        if vitals.bmi >= VITALS_THRESHOLDS.OBESITY_BMI:
            codes.append(CandidateCode(OBESITY_CODE, CODE_SOURCES.VITALS))
        elif vitals.bmi >= VITALS_THRESHOLDS.OVERWEIGHT_BMI:
            codes.append(CandidateCode(OVERWEIGHT_CODE, CODE_SOURCES.VITALS))
    return codes


def checklist_codes(snapshot: VisitSnapshot) -> list[CandidateCode]:
    codes = []
    for item in snapshot.checklist:
        if item.status != ChecklistStatus.COMPLETE:
            continue

        source = (
            CODE_SOURCES.ASSESSMENT
            if item.item_type == ChecklistItemType.ASSESSMENT
            else CODE_SOURCES.MEASURE
        )
        codes.extend(CandidateCode(t, source) for t in CHECKLIST_CODES.get(item.item_id, ()))

        if item.item_id in DEPRESSION_SCREENS:
            response = snapshot.assessment(item.item_id)
            score = response.computed_score if response else None
            if score is not None and score >= DEPRESSION_SCORE_THRESHOLD:
                codes.append(CandidateCode(DEPRESSION_CODE, CODE_SOURCES.ASSESSMENT))
    return codes


def dedupe(candidates: Iterable[CandidateCode], taken: Iterable[CodeKey] = ()) -> list[CandidateCode]:
    """Drop candidates whose key was already seen, keeping the first occurrence."""
    seen = set(taken)
    unique = []
    for candidate in candidates:
        if candidate.key in seen:
            continue
        seen.add(candidate.key)
        unique.append(candidate)
    return unique


class CodeGenerationEngine:
    """Derive a visit's codes from its snapshot."""

    def __init__(self, preserve_manual_codes: bool = False):
        self.preserve_manual_codes = preserve_manual_codes

    def candidates(self, snapshot: VisitSnapshot) -> list[CandidateCode]:
        """All derived codes in generation order, before deduplication."""
        return [
            *base_codes(snapshot.visit.visit_type),
            *vitals_codes(snapshot.vitals),
            *checklist_codes(snapshot),
        ]

    def generate(self, snapshot: VisitSnapshot) -> list[VisitCode]:
        """
        Build the code set that replaces the visit's existing codes.

        By default every existing row is discarded. With manual code
        preservation on, manually added rows are carried over and generated
        codes that collide with a kept, non-removed row are skipped.
        """
        kept: list[VisitCode] = []
        if self.preserve_manual_codes:
            kept = [code for code in snapshot.codes if not code.auto_assigned]

        taken = [code.key for code in kept if not code.removed_by_np]
        generated = [
            VisitCode(
                visit_id=snapshot.visit_id,
                code_type=candidate.template.code_type,
                code=candidate.template.code,
                description=candidate.template.description,
                source=candidate.source,
                auto_assigned=True,
                verified=False,
                removed_by_np=False,
            )
            for candidate in dedupe(self.candidates(snapshot), taken)
        ]

        logger.debug(
            f"Generated {len(generated)} codes",
            visit_id=snapshot.visit_id,
            preserved=len(kept),
        )
        return kept + generated
