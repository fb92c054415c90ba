"""
Static coding tables and clinical thresholds.

These tables drive deterministic code generation. They are code, not
runtime configuration: changing a billing code mapping is a reviewed
change, unlike trigger or evidence rules which live in the rulesets.
"""

from dataclasses import dataclass

from compliance_engine.models.coding import CodeType
from compliance_engine.models.visit import VisitType


@dataclass(frozen=True)
class CodeTemplate:
    """A code the generator can emit, before it is bound to a visit."""

    code_type: CodeType
    code: str
    description: str


@dataclass(frozen=True)
class VitalsThresholds:
    """Vitals cut points used for vitals-derived diagnosis codes."""

    HYPERTENSION_SYSTOLIC: int = 140
    OBESITY_BMI: float = 30.0
    OVERWEIGHT_BMI: float = 25.0


@dataclass(frozen=True)
class CodeSources:
    """Values recorded in VisitCode.source."""

    VISIT_TYPE: str = "visit_type"
    VITALS: str = "vitals"
    ASSESSMENT: str = "assessment"
    MEASURE: str = "measure"
    MANUAL: str = "manual"


# Singleton instances
VITALS_THRESHOLDS = VitalsThresholds()
CODE_SOURCES = CodeSources()

# Visit types without their own base set are coded as a standard follow-up
DEFAULT_VISIT_TYPE = VisitType.FOLLOW_UP.value

BASE_CODES: dict[str, tuple[CodeTemplate, ...]] = {
    VisitType.ANNUAL_WELLNESS.value: (
        CodeTemplate(CodeType.CPT, "99387", "Initial comprehensive preventive medicine, 65 years and older"),
        CodeTemplate(CodeType.HCPCS, "G0438", "Annual wellness visit, initial"),
        CodeTemplate(CodeType.ICD10, "Z00.00", "General adult medical exam without abnormal findings"),
    ),
    VisitType.INITIAL_ASSESSMENT.value: (
        CodeTemplate(CodeType.CPT, "99345", "Home visit, new patient, high complexity"),
        CodeTemplate(CodeType.HCPCS, "G0402", "Initial preventive physical examination"),
        CodeTemplate(CodeType.ICD10, "Z01.89", "Encounter for other specified special examinations"),
    ),
    VisitType.FOLLOW_UP.value: (
        CodeTemplate(CodeType.CPT, "99349", "Home visit, established patient, moderate complexity"),
        CodeTemplate(CodeType.HCPCS, "G2211", "Visit complexity inherent to longitudinal care"),
        CodeTemplate(CodeType.ICD10, "Z09", "Encounter for follow-up examination after completed treatment"),
    ),
}

HYPERTENSION_CODE = CodeTemplate(CodeType.ICD10, "I10", "Essential (primary) hypertension")
OBESITY_CODE = CodeTemplate(CodeType.ICD10, "E66.9", "Obesity, unspecified")
OVERWEIGHT_CODE = CodeTemplate(CodeType.ICD10, "E66.3", "Overweight")

# Depression screens scoring at or above this add a depression diagnosis
DEPRESSION_SCORE_THRESHOLD = 10
DEPRESSION_CODE = CodeTemplate(
    CodeType.ICD10, "F32.1", "Major depressive disorder, single episode, moderate"
)
DEPRESSION_SCREENS = frozenset({"PHQ-2", "PHQ-9"})

_BEHAVIORAL_SCREEN = CodeTemplate(
    CodeType.CPT, "96127", "Brief emotional/behavioral assessment with scoring"
)

# Completed checklist item ID -> codes it contributes
CHECKLIST_CODES: dict[str, tuple[CodeTemplate, ...]] = {
    "PHQ-2": (_BEHAVIORAL_SCREEN,),
    "PHQ-9": (_BEHAVIORAL_SCREEN,),
    "PRAPARE": (
        CodeTemplate(CodeType.CPT, "96160", "Administration of patient-focused health risk assessment"),
    ),
    "AWV": (CodeTemplate(CodeType.HCPCS, "G0438", "Annual wellness visit, initial"),),
    "BCS": (
        CodeTemplate(CodeType.CPT, "3014F", "Screening mammography results documented and reviewed"),
        CodeTemplate(CodeType.ICD10, "Z12.31", "Encounter for screening mammogram for malignant neoplasm of breast"),
    ),
    "COL": (
        CodeTemplate(CodeType.CPT, "3017F", "Colorectal cancer screening results documented and reviewed"),
        CodeTemplate(CodeType.ICD10, "Z12.11", "Encounter for screening for malignant neoplasm of colon"),
    ),
    "CDC-A1C": (
        CodeTemplate(CodeType.CPT, "83036", "Hemoglobin A1c"),
    ),
    "CBP": (
        CodeTemplate(CodeType.CPT, "2000F", "Blood pressure measured"),
    ),
}

# Display names for plan-pack components
COMPONENT_NAMES: dict[str, str] = {
    "PHQ-2": "Patient Health Questionnaire-2",
    "PHQ-9": "Patient Health Questionnaire-9",
    "PRAPARE": "PRAPARE Social Determinants Screening",
    "AWV": "Annual Wellness Visit Health Risk Assessment",
    "BCS": "Breast Cancer Screening",
    "COL": "Colorectal Cancer Screening",
    "CDC-A1C": "Diabetes: HbA1c Testing",
    "CBP": "Controlling High Blood Pressure",
    "FMC": "Follow-Up After Emergency Visit",
}


def get_base_codes(visit_type: str) -> tuple[CodeTemplate, ...]:
    """
    Get the base code set for a visit type.

    Args:
        visit_type: Visit type value like 'annual_wellness'

    Returns:
        The visit type's base codes, or the follow-up set for unknown types
    """
    return BASE_CODES.get(visit_type, BASE_CODES[DEFAULT_VISIT_TYPE])


def get_component_name(component_id: str) -> str:
    """Get a component's display name, falling back to its identifier."""
    return COMPONENT_NAMES.get(component_id, component_id)
