"""
Rule configuration endpoints.
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from compliance_engine.config.rules import get_rule_config
from compliance_engine.models import TriggerSource

router = APIRouter(prefix="/api/rules", tags=["rules"])


class PlanPackSummary(BaseModel):
    """Plan pack overview."""

    plan_id: str
    plan_name: str
    visit_type: str
    required_assessments: list[str]
    required_measures: list[str]
    completeness_rules: int


class RulesSummaryResponse(BaseModel):
    """Summary of the loaded rule configuration."""

    trigger_rules: dict[str, int] = Field(description="Active trigger rules by source")
    trigger_rules_total: int
    evidence_rules: int
    plan_packs: list[PlanPackSummary]


@router.get("/summary", response_model=RulesSummaryResponse)
async def rules_summary() -> RulesSummaryResponse:
    """Summarize the loaded trigger rules, evidence rules and plan packs."""
    config = get_rule_config()

    packs = [
        PlanPackSummary(
            plan_id=pack.plan_id,
            plan_name=pack.plan_name,
            visit_type=pack.visit_type,
            required_assessments=pack.required_assessments,
            required_measures=pack.required_measures,
            completeness_rules=len(config.get_completeness_rules(pack.plan_id)),
        )
        for pack in config.plan_packs.values()
    ]
    packs.sort(key=lambda p: p.plan_id)

    return RulesSummaryResponse(
        trigger_rules={
            source.value: len(config.active_trigger_rules(source)) for source in TriggerSource
        },
        trigger_rules_total=len(config.trigger_rules),
        evidence_rules=len(config.evidence_rules),
        plan_packs=packs,
    )
