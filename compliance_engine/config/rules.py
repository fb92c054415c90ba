"""
Rule configuration loader for the visit compliance engine.

This module loads the rule configuration from JSON files in the rulesets directory:
    rulesets/trigger_rules.json       CDS trigger rules
    rulesets/evidence_rules.json      Diagnosis evidence rules (one per ICD-10 code)
    rulesets/plan_packs.json          Plan packs (required assessments and measures)
    rulesets/completeness_rules.json  Per plan pack completeness rules

Each file holds ``{"version": ..., "rules": [...]}``. The configuration is
loaded once, frozen, and cached for the lifetime of the process. Engine
components receive it as an argument rather than looking it up.
"""

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Optional, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from compliance_engine.config.logging import get_logger
from compliance_engine.config.settings import get_settings
from compliance_engine.errors import RuleConfigurationError
from compliance_engine.models.checklist import CompletenessRule, PlanPack
from compliance_engine.models.coding import DiagnosisEvidenceRule
from compliance_engine.models.rules import TriggerRule, TriggerSource

logger = get_logger(__name__)

# Path to the bundled rulesets directory
RULESETS_DIR = Path(__file__).parent.parent / "rulesets"

TRIGGER_RULES_FILE = "trigger_rules.json"
EVIDENCE_RULES_FILE = "evidence_rules.json"
PLAN_PACKS_FILE = "plan_packs.json"
COMPLETENESS_RULES_FILE = "completeness_rules.json"

# Module-level cache for loaded config
_config_cache: Optional["RuleConfiguration"] = None

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class RuleConfiguration:
    """Immutable snapshot of all rule configuration."""

    trigger_rules: tuple[TriggerRule, ...] = ()
    evidence_rules: Mapping[str, DiagnosisEvidenceRule] = field(
        default_factory=lambda: MappingProxyType({})
    )
    plan_packs: Mapping[str, PlanPack] = field(default_factory=lambda: MappingProxyType({}))
    completeness_rules: Mapping[str, tuple[CompletenessRule, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def build(
        cls,
        trigger_rules: Iterable[TriggerRule] = (),
        evidence_rules: Iterable[DiagnosisEvidenceRule] = (),
        plan_packs: Iterable[PlanPack] = (),
        completeness_rules: Iterable[CompletenessRule] = (),
    ) -> "RuleConfiguration":
        """
        Build a configuration from rule objects, enforcing unique keys.

        Raises:
            RuleConfigurationError: If two trigger rules share a rule_id or two
                evidence rules share an ICD-10 code
        """
        triggers = tuple(trigger_rules)
        seen: set[str] = set()
        for rule in triggers:
            if rule.rule_id in seen:
                raise RuleConfigurationError(TRIGGER_RULES_FILE, f"duplicate rule_id {rule.rule_id}")
            seen.add(rule.rule_id)

        evidence: dict[str, DiagnosisEvidenceRule] = {}
        for rule in evidence_rules:
            if rule.icd_code in evidence:
                raise RuleConfigurationError(EVIDENCE_RULES_FILE, f"duplicate icd_code {rule.icd_code}")
            evidence[rule.icd_code] = rule

        grouped: dict[str, list[CompletenessRule]] = {}
        for rule in completeness_rules:
            grouped.setdefault(rule.plan_pack_id, []).append(rule)

        return cls(
            trigger_rules=triggers,
            evidence_rules=MappingProxyType(evidence),
            plan_packs=MappingProxyType({pack.plan_id: pack for pack in plan_packs}),
            completeness_rules=MappingProxyType(
                {plan_id: tuple(rules) for plan_id, rules in grouped.items()}
            ),
        )

    def active_trigger_rules(self, source: TriggerSource | None = None) -> list[TriggerRule]:
        """Active trigger rules, optionally restricted to one trigger source."""
        return [
            rule
            for rule in self.trigger_rules
            if rule.active and (source is None or rule.trigger_source == source)
        ]

    def get_evidence_rule(self, icd_code: str) -> DiagnosisEvidenceRule | None:
        """Get the evidence rule for an exact ICD-10 code."""
        return self.evidence_rules.get(icd_code)

    def get_plan_pack(self, plan_id: str | None) -> PlanPack | None:
        """Get a plan pack by ID."""
        if not plan_id:
            return None
        return self.plan_packs.get(plan_id)

    def get_completeness_rules(self, plan_id: str | None) -> tuple[CompletenessRule, ...]:
        """Get the completeness rules configured for a plan pack."""
        if not plan_id:
            return ()
        return self.completeness_rules.get(plan_id, ())


def _read_ruleset(path: Path) -> list[dict[str, Any]]:
    """
    Read the ``rules`` list from one ruleset file.

    A missing file yields no rules. Unparseable JSON raises, since a
    half-read configuration must not be evaluated.
    """
    if not path.exists():
        logger.warning(f"Ruleset not found at {path}")
        return []

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise RuleConfigurationError(path.name, f"invalid JSON: {e}")

    rules = data.get("rules") if isinstance(data, dict) else None
    if not isinstance(rules, list):
        raise RuleConfigurationError(path.name, "expected an object with a 'rules' list")
    return rules


def _parse_rules(path: Path, model: type[ModelT]) -> list[ModelT]:
    """Parse ruleset entries, skipping (and logging) entries that do not validate."""
    parsed = []
    for index, entry in enumerate(_read_ruleset(path)):
        try:
            parsed.append(model.model_validate(entry))
        except PydanticValidationError as e:
            logger.warning(
                f"Skipping invalid entry {index} in {path.name}",
                errors=e.error_count(),
                detail=str(e.errors()[0]["msg"]) if e.errors() else None,
            )
    return parsed


def load_config(rules_dir: Path | None = None) -> RuleConfiguration:
    """
    Load rule configuration from JSON files.

    The config is loaded once and cached for the lifetime of the process.

    Args:
        rules_dir: Optional path to a rulesets directory. Defaults to the
            VCE_RULES_DIR setting, then the bundled rulesets.

    Returns:
        RuleConfiguration instance with loaded configuration.
    """
    global _config_cache

    if _config_cache is not None:
        return _config_cache

    configured = get_settings().rules_dir
    dir_path = rules_dir or (Path(configured) if configured else RULESETS_DIR)

    logger.info(f"Loading rule configuration from {dir_path}")

    _config_cache = RuleConfiguration.build(
        trigger_rules=_parse_rules(dir_path / TRIGGER_RULES_FILE, TriggerRule),
        evidence_rules=_parse_rules(dir_path / EVIDENCE_RULES_FILE, DiagnosisEvidenceRule),
        plan_packs=_parse_rules(dir_path / PLAN_PACKS_FILE, PlanPack),
        completeness_rules=_parse_rules(dir_path / COMPLETENESS_RULES_FILE, CompletenessRule),
    )

    logger.info(
        f"Loaded {len(_config_cache.trigger_rules)} trigger rules, "
        f"{len(_config_cache.evidence_rules)} evidence rules, "
        f"{len(_config_cache.plan_packs)} plan packs"
    )

    return _config_cache


def get_rule_config() -> RuleConfiguration:
    """
    Get the current rule configuration.

    Loads the config if not already loaded.
    """
    if _config_cache is None:
        return load_config()
    return _config_cache


def reload_config(rules_dir: Path | None = None) -> RuleConfiguration:
    """
    Force reload of rule configuration.

    Use this for testing or if ruleset files have changed.
    """
    global _config_cache
    _config_cache = None
    return load_config(rules_dir)


def reset_rule_config() -> None:
    """Drop the cached configuration without reloading."""
    global _config_cache
    _config_cache = None
