"""
CDS trigger rule engine.

Rules fire at most once per visit: a rule that already produced a
recommendation (pending, dismissed or resolved) is skipped on every later
event. The engine only builds recommendations; persisting them is the
caller's job.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from compliance_engine.config.logging import get_logger
from compliance_engine.config.rules import RuleConfiguration
from compliance_engine.engine.conditions import evaluate_condition
from compliance_engine.models.common import utcnow
from compliance_engine.models.rules import (
    Recommendation,
    RecommendationStatus,
    TriggerRule,
    TriggerSource,
)
from compliance_engine.models.visit import AssessmentResponse, VitalsRecord

logger = get_logger(__name__)


def vitals_event(vitals: VitalsRecord) -> dict[str, Any]:
    """Event data for a vitals recording."""
    return vitals.measurements()


def assessment_event(response: AssessmentResponse) -> dict[str, Any]:
    """Event data for a scored assessment."""
    return {"instrument_id": response.instrument_id, "score": response.computed_score}


class TriggerRuleEngine:
    """Match active trigger rules against a data event."""

    def __init__(self, config: RuleConfiguration):
        self.config = config

    def evaluate(
        self,
        visit_id: str,
        source: TriggerSource,
        event_data: Mapping[str, Any],
        existing: Iterable[Recommendation] = (),
        now: datetime | None = None,
    ) -> list[Recommendation]:
        """
        Evaluate the rules for one trigger source.

        Args:
            visit_id: Visit the event belongs to
            source: Kind of event (vitals or assessment)
            event_data: Vitals measurements, or {instrument_id, score}
            existing: Recommendations already recorded for the visit
            now: Timestamp for new recommendations (defaults to current UTC time)

        Returns:
            Newly triggered pending recommendations, in rule order
        """
        fired = {rec.rule_id for rec in existing}
        triggered_at = now or utcnow()
        triggered: list[Recommendation] = []

        for rule in self.config.active_trigger_rules(source):
            if rule.rule_id in fired:
                logger.debug(f"Rule {rule.rule_id} already fired for visit", visit_id=visit_id)
                continue
            if not evaluate_condition(rule.condition, event_data):
                continue

            fired.add(rule.rule_id)
            triggered.append(self._recommend(visit_id, rule, triggered_at))
            logger.info(
                f"Rule {rule.rule_id} triggered",
                visit_id=visit_id,
                priority=rule.priority,
            )

        return triggered

    @staticmethod
    def _recommend(visit_id: str, rule: TriggerRule, triggered_at: datetime) -> Recommendation:
        return Recommendation(
            visit_id=visit_id,
            rule_id=rule.rule_id,
            rule_name=rule.name,
            recommendation=rule.recommended_action,
            priority=rule.priority,
            status=RecommendationStatus.PENDING,
            triggered_at=triggered_at,
        )
