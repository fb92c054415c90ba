"""
Data types for visit coding and diagnosis evidence.

This module contains pydantic models and enums for:
- Visit codes (ICD-10, CPT, HCPCS) and their composite identity key
- Diagnosis evidence rules and per-code validation results
"""

from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from compliance_engine.models.common import new_id


class CodeType(str, Enum):
    """Code systems a visit code can belong to."""

    ICD10 = "ICD-10"
    CPT = "CPT"
    HCPCS = "HCPCS"


class CodeKey(NamedTuple):
    """Identity of a code within a visit: (code_type, code)."""

    code_type: CodeType
    code: str


class VisitCode(BaseModel):
    """A billing or diagnosis code attached to a visit."""

    id: str = Field(default_factory=new_id)
    visit_id: str
    code_type: CodeType
    code: str
    description: str
    source: str | None = Field(default=None, description="What produced the code")
    auto_assigned: bool = True
    verified: bool = False
    removed_by_np: bool = False

    @property
    def key(self) -> CodeKey:
        return CodeKey(self.code_type, self.code)


class EvidenceType(str, Enum):
    """Kinds of clinical evidence a diagnosis can require."""

    VITALS = "vitals"
    LAB = "lab"
    MEDICATION = "medication"
    ASSESSMENT = "assessment"


class EvidenceRequirement(BaseModel):
    """One piece of evidence a diagnosis code needs to be supported."""

    model_config = ConfigDict(frozen=True)

    type: EvidenceType
    field: str | None = Field(default=None, description="Vitals field (type=vitals)")
    test_name: str | None = Field(default=None, description="Lab test name (type=lab)")
    instrument_id: str | None = Field(default=None, description="Instrument (type=assessment)")
    keyword: str | None = Field(
        default=None,
        description="Medication search term (type=medication); falls back to description",
    )
    description: str


class DiagnosisEvidenceRule(BaseModel):
    """Evidence configuration for one ICD-10 code."""

    model_config = ConfigDict(frozen=True)

    icd_code: str
    category: str
    description: str | None = None
    required_evidence: tuple[EvidenceRequirement, ...] = ()


class EvidenceStatus(str, Enum):
    """How well a diagnosis is supported by the visit's clinical data."""

    SUPPORTED = "supported"
    PARTIAL = "partial"
    UNSUPPORTED = "unsupported"
    NO_RULE = "no_rule"


class EvidenceItemResult(BaseModel):
    """Whether a single evidence requirement was met."""

    type: EvidenceType
    description: str
    met: bool


class DiagnosisEvidenceResult(BaseModel):
    """Evidence validation outcome for one active ICD-10 code."""

    code_id: str
    icd_code: str
    description: str
    category: str | None = None
    status: EvidenceStatus
    items: list[EvidenceItemResult] = Field(default_factory=list)

    @property
    def met_count(self) -> int:
        return sum(1 for item in self.items if item.met)
