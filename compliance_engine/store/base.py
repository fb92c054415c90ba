"""
Visit and clinical data store interface.

The store holds visit records, the clinical data captured during a visit,
member-level medications and labs, and the artifacts the engine writes back
(recommendations, codes, readiness results, notes, reviews).

These writes must be atomic per visit:
- replace_codes: readers never observe a visit with its codes half replaced
- insert_code / update_code: the (code_type, code) check and the write are one step
- update_visit_status: compare-and-set so two finalize requests cannot both win
"""

from abc import ABC, abstractmethod
from collections.abc import Collection, Iterable
from typing import Any

from compliance_engine.errors import DuplicateCodeError, VisitCodeNotFoundError, VisitNotFoundError
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
    VisitSnapshot,
    VisitStatus,
    VitalsRecord,
)


def write_code(rows: list[VisitCode], code: VisitCode, *, insert: bool) -> list[VisitCode]:
    """
    Apply one code write to a visit's rows, shared by every backend.

    Removed rows do not hold their key, so a removed code can be added again.
    """
    if not code.removed_by_np:
        for row in rows:
            if row.id != code.id and not row.removed_by_np and row.key == code.key:
                raise DuplicateCodeError(code.visit_id, code.code_type.value, code.code)

    if insert:
        return [*rows, code]

    for index, row in enumerate(rows):
        if row.id == code.id:
            return [*rows[:index], code, *rows[index + 1 :]]
    raise VisitCodeNotFoundError(code.visit_id, code.id)


class VisitStore(ABC):
    """Abstract base class for visit storage backends."""

    # -------------------------------------------------------------------------
    # Visits
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_visit(self, visit_id: str) -> Visit | None:
        """Get a visit by ID."""
        ...

    @abstractmethod
    async def save_visit(self, visit: Visit) -> None:
        """Create or overwrite a visit."""
        ...

    @abstractmethod
    async def update_visit_status(
        self,
        visit_id: str,
        expected: Collection[VisitStatus],
        new_status: VisitStatus,
        changes: dict[str, Any] | None = None,
    ) -> Visit | None:
        """
        Compare-and-set a visit's status.

        Args:
            visit_id: Visit to update
            expected: Statuses the visit must currently be in
            new_status: Status to move to
            changes: Other fields to set in the same write

        Returns:
            The updated visit, or None if the visit's status was not expected
        """
        ...

    # -------------------------------------------------------------------------
    # Clinical data
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_vitals(self, visit_id: str) -> VitalsRecord | None: ...

    @abstractmethod
    async def save_vitals(self, vitals: VitalsRecord) -> None:
        """Upsert the visit's single vitals record."""
        ...

    @abstractmethod
    async def list_assessments(self, visit_id: str) -> list[AssessmentResponse]: ...

    @abstractmethod
    async def save_assessment(self, response: AssessmentResponse) -> None:
        """Upsert an assessment response by (visit_id, instrument_id)."""
        ...

    @abstractmethod
    async def list_measures(self, visit_id: str) -> list[MeasureResult]: ...

    @abstractmethod
    async def save_measure(self, result: MeasureResult) -> None:
        """Upsert a measure result by (visit_id, measure_id)."""
        ...

    @abstractmethod
    async def list_checklist(self, visit_id: str) -> list[ChecklistItem]:
        """Checklist items in provisioning order."""
        ...

    @abstractmethod
    async def save_checklist_items(self, visit_id: str, items: Iterable[ChecklistItem]) -> None:
        """Upsert checklist items by ID, appending new ones."""
        ...

    @abstractmethod
    async def list_medications(self, member_id: str) -> list[MedReconciliationEntry]: ...

    @abstractmethod
    async def save_medication(self, entry: MedReconciliationEntry) -> None: ...

    @abstractmethod
    async def list_labs(self, member_id: str) -> list[LabResult]: ...

    @abstractmethod
    async def save_lab(self, lab: LabResult) -> None: ...

    # -------------------------------------------------------------------------
    # Engine output
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_codes(self, visit_id: str) -> list[VisitCode]: ...

    @abstractmethod
    async def replace_codes(self, visit_id: str, codes: Iterable[VisitCode]) -> None:
        """Atomically replace every code on the visit."""
        ...

    @abstractmethod
    async def insert_code(self, code: VisitCode) -> None:
        """
        Append a code row.

        Raises:
            DuplicateCodeError: If an active row already holds the same (code_type, code)
        """
        ...

    @abstractmethod
    async def update_code(self, code: VisitCode) -> None:
        """
        Overwrite an existing code row.

        Raises:
            VisitCodeNotFoundError: If the row is gone, e.g. replaced by regeneration
            DuplicateCodeError: If another active row already holds the same key
        """
        ...

    @abstractmethod
    async def list_recommendations(self, visit_id: str) -> list[Recommendation]:
        """Recommendations in trigger order."""
        ...

    @abstractmethod
    async def add_recommendations(
        self, visit_id: str, recommendations: Iterable[Recommendation]
    ) -> list[Recommendation]:
        """
        Insert recommendations, skipping any rule that already has one.

        Returns:
            The recommendations actually inserted
        """
        ...

    @abstractmethod
    async def save_recommendation(self, recommendation: Recommendation) -> None:
        """Update an existing recommendation."""
        ...

    @abstractmethod
    async def get_readiness(self, visit_id: str) -> BillingReadinessResult | None: ...

    @abstractmethod
    async def save_readiness(self, result: BillingReadinessResult) -> None:
        """Overwrite the visit's readiness result."""
        ...

    @abstractmethod
    async def get_note(self, visit_id: str) -> ClinicalNote | None: ...

    @abstractmethod
    async def save_note(self, note: ClinicalNote) -> None: ...

    @abstractmethod
    async def add_review(self, review: ReviewDecision) -> None: ...

    @abstractmethod
    async def list_reviews(self, visit_id: str) -> list[ReviewDecision]: ...

    async def close(self) -> None:
        """Release backend resources."""
        return None

    # -------------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------------

    async def require_visit(self, visit_id: str) -> Visit:
        """
        Get a visit, raising if it does not exist.

        Raises:
            VisitNotFoundError: If the visit does not exist
        """
        visit = await self.get_visit(visit_id)
        if visit is None:
            raise VisitNotFoundError(visit_id)
        return visit

    async def get_snapshot(self, visit_id: str) -> VisitSnapshot:
        """
        Read everything the engine needs for one visit.

        Raises:
            VisitNotFoundError: If the visit does not exist
        """
        visit = await self.require_visit(visit_id)
        return VisitSnapshot(
            visit=visit,
            vitals=await self.get_vitals(visit_id),
            assessments=await self.list_assessments(visit_id),
            measures=await self.list_measures(visit_id),
            checklist=await self.list_checklist(visit_id),
            medications=await self.list_medications(visit.member_id),
            labs=await self.list_labs(visit.member_id),
            codes=await self.list_codes(visit_id),
            recommendations=await self.list_recommendations(visit_id),
        )
