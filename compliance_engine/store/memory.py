"""In-memory visit store for development and tests."""

import asyncio
from collections import defaultdict
from collections.abc import Collection, Iterable
from typing import Any, TypeVar

from pydantic import BaseModel

from compliance_engine.config.logging import get_logger
from compliance_engine.models import (
    AssessmentResponse,
    BillingReadinessResult,
    ChecklistItem,
    ClinicalNote,
    LabResult,
    MeasureResult,
    MedReconciliationEntry,
    Recommendation,
    ReviewDecision,
    Visit,
    VisitCode,
    VisitStatus,
    VitalsRecord,
)
from compliance_engine.store.base import VisitStore, write_code

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _copy(model: ModelT) -> ModelT:
    return model.model_copy(deep=True)


class InMemoryVisitStore(VisitStore):
    """
    Dict-backed store.

    Records are copied on the way in and out so callers never hold a live
    reference. Read-modify-write operations hold a per-visit lock.
    """

    def __init__(self):
        self._visits: dict[str, Visit] = {}
        self._vitals: dict[str, VitalsRecord] = {}
        # visit_id -> instrument_id / measure_id / item id -> record
        self._assessments: dict[str, dict[str, AssessmentResponse]] = defaultdict(dict)
        self._measures: dict[str, dict[str, MeasureResult]] = defaultdict(dict)
        self._checklist: dict[str, dict[str, ChecklistItem]] = defaultdict(dict)
        # member_id -> id -> record
        self._medications: dict[str, dict[str, MedReconciliationEntry]] = defaultdict(dict)
        self._labs: dict[str, dict[str, LabResult]] = defaultdict(dict)
        self._codes: dict[str, list[VisitCode]] = defaultdict(list)
        # visit_id -> rule_id -> recommendation
        self._recommendations: dict[str, dict[str, Recommendation]] = defaultdict(dict)
        self._readiness: dict[str, BillingReadinessResult] = {}
        self._notes: dict[str, ClinicalNote] = {}
        self._reviews: dict[str, list[ReviewDecision]] = defaultdict(list)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # -- Visits --

    async def get_visit(self, visit_id: str) -> Visit | None:
        visit = self._visits.get(visit_id)
        return _copy(visit) if visit else None

    async def save_visit(self, visit: Visit) -> None:
        self._visits[visit.id] = _copy(visit)

    async def update_visit_status(
        self,
        visit_id: str,
        expected: Collection[VisitStatus],
        new_status: VisitStatus,
        changes: dict[str, Any] | None = None,
    ) -> Visit | None:
        async with self._locks[visit_id]:
            current = self._visits.get(visit_id)
            if current is None or current.status not in expected:
                return None
            updated = current.model_copy(update={**(changes or {}), "status": new_status})
            self._visits[visit_id] = updated
            return _copy(updated)

    # -- Clinical data --

    async def get_vitals(self, visit_id: str) -> VitalsRecord | None:
        vitals = self._vitals.get(visit_id)
        return _copy(vitals) if vitals else None

    async def save_vitals(self, vitals: VitalsRecord) -> None:
        self._vitals[vitals.visit_id] = _copy(vitals)

    async def list_assessments(self, visit_id: str) -> list[AssessmentResponse]:
        return [_copy(a) for a in self._assessments[visit_id].values()]

    async def save_assessment(self, response: AssessmentResponse) -> None:
        self._assessments[response.visit_id][response.instrument_id] = _copy(response)

    async def list_measures(self, visit_id: str) -> list[MeasureResult]:
        return [_copy(m) for m in self._measures[visit_id].values()]

    async def save_measure(self, result: MeasureResult) -> None:
        self._measures[result.visit_id][result.measure_id] = _copy(result)

    async def list_checklist(self, visit_id: str) -> list[ChecklistItem]:
        return [_copy(item) for item in self._checklist[visit_id].values()]

    async def save_checklist_items(self, visit_id: str, items: Iterable[ChecklistItem]) -> None:
        async with self._locks[visit_id]:
            for item in items:
                self._checklist[visit_id][item.id] = _copy(item)

    async def list_medications(self, member_id: str) -> list[MedReconciliationEntry]:
        return [_copy(m) for m in self._medications[member_id].values()]

    async def save_medication(self, entry: MedReconciliationEntry) -> None:
        self._medications[entry.member_id][entry.id] = _copy(entry)

    async def list_labs(self, member_id: str) -> list[LabResult]:
        return [_copy(lab) for lab in self._labs[member_id].values()]

    async def save_lab(self, lab: LabResult) -> None:
        self._labs[lab.member_id][lab.id] = _copy(lab)

    # -- Engine output --

    async def list_codes(self, visit_id: str) -> list[VisitCode]:
        return [_copy(code) for code in self._codes[visit_id]]

    async def replace_codes(self, visit_id: str, codes: Iterable[VisitCode]) -> None:
        replacement = [_copy(code) for code in codes]
        async with self._locks[visit_id]:
            self._codes[visit_id] = replacement

    async def insert_code(self, code: VisitCode) -> None:
        async with self._locks[code.visit_id]:
            self._codes[code.visit_id] = write_code(self._codes[code.visit_id], _copy(code), insert=True)

    async def update_code(self, code: VisitCode) -> None:
        async with self._locks[code.visit_id]:
            self._codes[code.visit_id] = write_code(self._codes[code.visit_id], _copy(code), insert=False)

    async def list_recommendations(self, visit_id: str) -> list[Recommendation]:
        return [_copy(rec) for rec in self._recommendations[visit_id].values()]

    async def add_recommendations(
        self, visit_id: str, recommendations: Iterable[Recommendation]
    ) -> list[Recommendation]:
        inserted = []
        async with self._locks[visit_id]:
            existing = self._recommendations[visit_id]
            for rec in recommendations:
                if rec.rule_id in existing:
                    logger.debug(f"Skipping duplicate recommendation for {rec.rule_id}")
                    continue
                existing[rec.rule_id] = _copy(rec)
                inserted.append(_copy(rec))
        return inserted

    async def save_recommendation(self, recommendation: Recommendation) -> None:
        self._recommendations[recommendation.visit_id][recommendation.rule_id] = _copy(
            recommendation
        )

    async def get_readiness(self, visit_id: str) -> BillingReadinessResult | None:
        result = self._readiness.get(visit_id)
        return _copy(result) if result else None

    async def save_readiness(self, result: BillingReadinessResult) -> None:
        self._readiness[result.visit_id] = _copy(result)

    async def get_note(self, visit_id: str) -> ClinicalNote | None:
        note = self._notes.get(visit_id)
        return _copy(note) if note else None

    async def save_note(self, note: ClinicalNote) -> None:
        self._notes[note.visit_id] = _copy(note)

    async def add_review(self, review: ReviewDecision) -> None:
        self._reviews[review.visit_id].append(_copy(review))

    async def list_reviews(self, visit_id: str) -> list[ReviewDecision]:
        return [_copy(r) for r in self._reviews[visit_id]]
