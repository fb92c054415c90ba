"""
Tests for clinical note generation.
"""

from compliance_engine.models import (
    AssessmentResponse,
    ChecklistItemType,
    ChecklistStatus,
    ClinicalNote,
    MeasureResult,
)
from compliance_engine.services.notes import DEFAULT_EXAM_NOTES, build_clinical_note
from conftest import MEMBER_ID, VISIT_ID, make_item, make_snapshot, make_visit


class TestBuildClinicalNote:
    """Tests for build_clinical_note."""

    def test_summarizes_checklist(self, normal_vitals):
        """Should summarize completed and unable-to-assess items only."""
        snapshot = make_snapshot(
            vitals=normal_vitals,
            checklist=[
                make_item("PHQ-2", item_name="PHQ-2", status=ChecklistStatus.COMPLETE),
                make_item("COL", ChecklistItemType.MEASURE, ChecklistStatus.COMPLETE, item_name="COL"),
                make_item(
                    "PRAPARE",
                    status=ChecklistStatus.UNABLE_TO_ASSESS,
                    item_name="PRAPARE",
                    unable_to_assess_reason="Patient declined",
                ),
                make_item("AWV", item_name="AWV"),
            ],
            assessments=[
                AssessmentResponse(
                    visit_id=VISIT_ID,
                    instrument_id="PHQ-2",
                    computed_score=1,
                    interpretation="Negative",
                    status="complete",
                )
            ],
            measures=[
                MeasureResult(visit_id=VISIT_ID, measure_id="COL", status="complete", capture_method="FIT kit")
            ],
        )

        note = build_clinical_note(snapshot)

        assert note.chief_complaint == "Annual Wellness Visit / In-Home Assessment"
        assert MEMBER_ID in note.hpi_notes
        assert note.exam_notes == DEFAULT_EXAM_NOTES
        assert note.assessment_measures_summary.splitlines() == [
            "PHQ-2: Score 1 - Negative",
            "COL: Completed via FIT kit",
            "PRAPARE: Unable to assess - Patient declined",
        ]

    def test_vitals_notes_become_exam_notes(self, normal_vitals):
        vitals = normal_vitals.model_copy(update={"notes": "Lungs clear"})
        note = build_clinical_note(make_snapshot(vitals=vitals))
        assert note.exam_notes == "Lungs clear"

    def test_unknown_visit_type(self):
        note = build_clinical_note(make_snapshot(visit=make_visit(visit_type="telehealth")))
        assert note.chief_complaint == "Follow-Up In-Home Visit"

    def test_regenerated_note_bumps_version(self):
        previous = ClinicalNote(visit_id=VISIT_ID, version=2)
        note = build_clinical_note(make_snapshot(), previous=previous)
        assert note.id == previous.id
        assert note.version == 3
