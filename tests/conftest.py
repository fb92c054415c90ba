"""
Shared pytest fixtures for visit compliance engine tests.
"""

import os
from typing import Any

import pytest

# Set test environment variables before importing engine modules
os.environ.setdefault("VCE_LOG_JSON", "false")
# Ensure no Redis in tests - use the in-memory store
# Set to empty string to override any .env file value
os.environ["VCE_REDIS_URL"] = ""

from compliance_engine.config.rules import get_rule_config, reset_rule_config  # noqa: E402
from compliance_engine.config.settings import reset_settings  # noqa: E402
from compliance_engine.models import (  # noqa: E402
    AssessmentResponse,
    ChecklistItem,
    ChecklistItemType,
    ChecklistStatus,
    CodeType,
    LabResult,
    MeasureResult,
    MedReconciliationEntry,
    Visit,
    VisitCode,
    VisitSnapshot,
    VisitStatus,
    VitalsRecord,
)
from compliance_engine.store import InMemoryVisitStore, reset_visit_store, set_visit_store  # noqa: E402

VISIT_ID = "visit-001"
MEMBER_ID = "member-001"
MA_PLAN = "MA-PLAN-001"


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset singletons between tests to avoid state leakage."""
    reset_settings()
    reset_rule_config()
    reset_visit_store()
    yield
    reset_visit_store()
    reset_rule_config()
    reset_settings()


@pytest.fixture
def rule_config():
    """The bundled rule configuration."""
    return get_rule_config()


@pytest.fixture
def store() -> InMemoryVisitStore:
    """An in-memory store installed as the process-wide store."""
    store = InMemoryVisitStore()
    set_visit_store(store)
    return store


def make_visit(**overrides: Any) -> Visit:
    """Build a visit with sensible defaults."""
    fields: dict[str, Any] = {
        "id": VISIT_ID,
        "member_id": MEMBER_ID,
        "visit_type": "annual_wellness",
        "plan_id": MA_PLAN,
        "status": VisitStatus.IN_PROGRESS,
    }
    fields.update(overrides)
    return Visit(**fields)


def make_item(
    item_id: str,
    item_type: ChecklistItemType = ChecklistItemType.ASSESSMENT,
    status: ChecklistStatus = ChecklistStatus.NOT_STARTED,
    **overrides: Any,
) -> ChecklistItem:
    return ChecklistItem(
        visit_id=overrides.pop("visit_id", VISIT_ID),
        item_type=item_type,
        item_id=item_id,
        item_name=overrides.pop("item_name", item_id),
        status=status,
        **overrides,
    )


def make_code(
    code: str,
    code_type: CodeType = CodeType.ICD10,
    **overrides: Any,
) -> VisitCode:
    return VisitCode(
        visit_id=overrides.pop("visit_id", VISIT_ID),
        code_type=code_type,
        code=code,
        description=overrides.pop("description", f"Description of {code}"),
        **overrides,
    )


def make_snapshot(**overrides: Any) -> VisitSnapshot:
    """Build a snapshot around make_visit(); keyword 'visit' replaces the visit."""
    visit = overrides.pop("visit", None) or make_visit()
    return VisitSnapshot(visit=visit, **overrides)


def complete_ma_checklist() -> list[ChecklistItem]:
    """A fully completed MA-PLAN-001 checklist."""
    return [
        make_item("PHQ-2", status=ChecklistStatus.COMPLETE),
        make_item("PRAPARE", status=ChecklistStatus.COMPLETE),
        make_item("AWV", status=ChecklistStatus.COMPLETE),
        make_item("CBP", ChecklistItemType.MEASURE, ChecklistStatus.COMPLETE),
        make_item("CDC-A1C", ChecklistItemType.MEASURE, ChecklistStatus.COMPLETE),
        make_item("COL", ChecklistItemType.MEASURE, ChecklistStatus.COMPLETE),
    ]


@pytest.fixture
def sample_vitals() -> VitalsRecord:
    """Vitals with a hypertensive systolic reading and an obese BMI."""
    return VitalsRecord(
        visit_id=VISIT_ID,
        systolic=150,
        diastolic=85,
        heart_rate=72,
        oxygen_saturation=97,
        bmi=31.2,
    )


@pytest.fixture
def normal_vitals() -> VitalsRecord:
    """Vitals that trip no trigger rule."""
    return VitalsRecord(
        visit_id=VISIT_ID,
        systolic=120,
        diastolic=78,
        heart_rate=70,
        oxygen_saturation=98,
        temperature=98.4,
        bmi=22.5,
        pain_level=1,
    )


@pytest.fixture
def diabetes_medication() -> MedReconciliationEntry:
    return MedReconciliationEntry(
        member_id=MEMBER_ID,
        medication_name="Metformin",
        generic_name="metformin hydrochloride",
        category="Diabetes",
    )


@pytest.fixture
def a1c_lab() -> LabResult:
    return LabResult(
        member_id=MEMBER_ID,
        test_name="HbA1c",
        value=7.4,
        unit="%",
        collected_date="2026-09-01",
    )


@pytest.fixture
def complete_phq2() -> AssessmentResponse:
    return AssessmentResponse(
        visit_id=VISIT_ID,
        instrument_id="PHQ-2",
        computed_score=4,
        status="complete",
    )


@pytest.fixture
def complete_measure() -> MeasureResult:
    return MeasureResult(visit_id=VISIT_ID, measure_id="COL", status="complete")


@pytest.fixture
async def seeded_store(store, normal_vitals, diabetes_medication) -> InMemoryVisitStore:
    """A store holding one in-progress MA visit with vitals and one medication."""
    await store.save_visit(make_visit())
    await store.save_vitals(normal_vitals)
    await store.save_medication(diabetes_medication)
    return store
