"""Clinical note generation at finalize time."""

from compliance_engine.models import (
    ChecklistItemType,
    ChecklistStatus,
    ClinicalNote,
    VisitSnapshot,
    VisitType,
)

CHIEF_COMPLAINTS = {
    VisitType.ANNUAL_WELLNESS.value: "Annual Wellness Visit / In-Home Assessment",
    VisitType.INITIAL_ASSESSMENT.value: "Initial In-Home Assessment",
    VisitType.FOLLOW_UP.value: "Follow-Up In-Home Visit",
}
DEFAULT_EXAM_NOTES = "Physical exam performed. See vitals for recorded measurements."
PLAN_NOTES = "See care plan tasks for follow-up actions."


def summarize_checklist(snapshot: VisitSnapshot) -> list[str]:
    """One summary line per completed or unable-to-assess checklist item."""
    lines = []
    measures = {m.measure_id: m for m in snapshot.measures}

    for item in snapshot.checklist:
        if item.status == ChecklistStatus.UNABLE_TO_ASSESS:
            lines.append(f"{item.item_name}: Unable to assess - {item.unable_to_assess_reason}")
            continue
        if item.status != ChecklistStatus.COMPLETE:
            continue

        if item.item_type == ChecklistItemType.ASSESSMENT:
            response = snapshot.assessment(item.item_id)
            if response:
                lines.append(
                    f"{item.item_name}: Score {response.computed_score} - "
                    f"{response.interpretation or 'N/A'}"
                )
        elif item.item_type == ChecklistItemType.MEASURE:
            result = measures.get(item.item_id)
            if result:
                lines.append(f"{item.item_name}: Completed via {result.capture_method or 'unknown'}")

    return lines


def build_clinical_note(snapshot: VisitSnapshot, previous: ClinicalNote | None = None) -> ClinicalNote:
    """
    Build the visit's clinical note from its snapshot.

    A regenerated note keeps the previous note's ID and bumps its version.
    """
    visit = snapshot.visit
    note = ClinicalNote(
        visit_id=visit.id,
        chief_complaint=CHIEF_COMPLAINTS.get(visit.visit_type, CHIEF_COMPLAINTS[VisitType.FOLLOW_UP.value]),
        hpi_notes=f"Member {visit.member_id} seen for scheduled in-home visit.",
        exam_notes=(snapshot.vitals.notes if snapshot.vitals else None) or DEFAULT_EXAM_NOTES,
        assessment_measures_summary="\n".join(summarize_checklist(snapshot)),
        plan_notes=PLAN_NOTES,
    )
    if previous is not None:
        note = note.model_copy(update={"id": previous.id, "version": previous.version + 1})
    return note
