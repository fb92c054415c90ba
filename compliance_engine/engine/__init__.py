"""
Rule evaluation, coding, evidence and scoring components.

Every component is synchronous and pure: it reads a VisitSnapshot and an
immutable RuleConfiguration and returns derived artifacts without touching
the store.
"""

from compliance_engine.engine.coding import CodeGenerationEngine
from compliance_engine.engine.completion import CompletionGate, transition
from compliance_engine.engine.conditions import evaluate, evaluate_condition
from compliance_engine.engine.evidence import EvidenceValidationEngine
from compliance_engine.engine.readiness import (
    ReadinessScoringEngine,
    ScoreWeights,
    apply_override,
    overall_score,
)
from compliance_engine.engine.triggers import TriggerRuleEngine

__all__ = [
    "CodeGenerationEngine",
    "CompletionGate",
    "EvidenceValidationEngine",
    "ReadinessScoringEngine",
    "ScoreWeights",
    "TriggerRuleEngine",
    "apply_override",
    "evaluate",
    "evaluate_condition",
    "overall_score",
    "transition",
]
