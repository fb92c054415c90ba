"""
Tests for rule configuration loading and settings.
"""

import json
import shutil

import pytest
from pydantic import ValidationError as PydanticValidationError

from compliance_engine.config.rules import (
    RULESETS_DIR,
    TRIGGER_RULES_FILE,
    get_rule_config,
    load_config,
    reload_config,
)
from compliance_engine.config.settings import Settings, get_settings
from compliance_engine.errors import RuleConfigurationError
from compliance_engine.models import TriggerSource


@pytest.fixture
def rules_dir(tmp_path):
    """A writable copy of the bundled rulesets."""
    target = tmp_path / "rulesets"
    shutil.copytree(RULESETS_DIR, target)
    return target


def _read(path):
    return json.loads(path.read_text())


def _write(path, data):
    path.write_text(json.dumps(data))


BUNDLED_TRIGGER_RULES = len(_read(RULESETS_DIR / TRIGGER_RULES_FILE)["rules"])


class TestLoadConfig:
    """Tests for load_config."""

    def test_bundled_rulesets(self):
        """Should load every bundled ruleset."""
        config = load_config()

        assert len(config.trigger_rules) == BUNDLED_TRIGGER_RULES
        assert config.get_evidence_rule("E11.9") is not None
        assert set(config.plan_packs) == {"MA-PLAN-001", "ACA-PLAN-001"}
        assert len(config.get_completeness_rules("MA-PLAN-001")) == 8

    def test_cached(self):
        """Should return the same frozen instance until reloaded."""
        first = get_rule_config()
        assert get_rule_config() is first
        assert reload_config() is not first

    def test_rules_dir_setting(self, rules_dir, monkeypatch):
        """Should read rulesets from VCE_RULES_DIR."""
        path = rules_dir / TRIGGER_RULES_FILE
        data = _read(path)
        data["rules"] = data["rules"][:2]
        _write(path, data)

        monkeypatch.setenv("VCE_RULES_DIR", str(rules_dir))
        get_settings.cache_clear()

        assert len(reload_config().trigger_rules) == 2

    def test_missing_file_yields_no_rules(self, rules_dir):
        (rules_dir / "evidence_rules.json").unlink()
        config = reload_config(rules_dir)
        assert config.evidence_rules == {}
        assert len(config.trigger_rules) == BUNDLED_TRIGGER_RULES

    def test_invalid_entry_skipped(self, rules_dir):
        """Should skip entries that fail validation and keep the rest."""
        path = rules_dir / TRIGGER_RULES_FILE
        data = _read(path)
        data["rules"].append({"rule_id": "BROKEN"})
        _write(path, data)

        config = reload_config(rules_dir)

        assert len(config.trigger_rules) == BUNDLED_TRIGGER_RULES
        assert "BROKEN" not in {r.rule_id for r in config.trigger_rules}

    def test_duplicate_rule_id(self, rules_dir):
        """Should refuse a configuration with duplicate trigger rule IDs."""
        path = rules_dir / TRIGGER_RULES_FILE
        data = _read(path)
        data["rules"].append(data["rules"][0])
        _write(path, data)

        with pytest.raises(RuleConfigurationError) as exc:
            reload_config(rules_dir)
        assert "BP_HYPERTENSION_SCREEN" in exc.value.reason

    def test_duplicate_evidence_code(self, rules_dir):
        path = rules_dir / "evidence_rules.json"
        data = _read(path)
        data["rules"].append(data["rules"][0])
        _write(path, data)

        with pytest.raises(RuleConfigurationError):
            reload_config(rules_dir)

    def test_invalid_json(self, rules_dir):
        (rules_dir / TRIGGER_RULES_FILE).write_text("{not json")
        with pytest.raises(RuleConfigurationError) as exc:
            reload_config(rules_dir)
        assert exc.value.source == TRIGGER_RULES_FILE

    def test_missing_rules_list(self, rules_dir):
        _write(rules_dir / TRIGGER_RULES_FILE, {"version": "1.0"})
        with pytest.raises(RuleConfigurationError):
            reload_config(rules_dir)


class TestRuleConfiguration:
    """Tests for RuleConfiguration lookups."""

    def test_active_trigger_rules_by_source(self, rule_config):
        vitals = rule_config.active_trigger_rules(TriggerSource.VITALS)
        assessment = rule_config.active_trigger_rules(TriggerSource.ASSESSMENT)

        assert all(r.trigger_source == TriggerSource.VITALS for r in vitals)
        assert {r.rule_id for r in assessment} >= {"PHQ2_POSITIVE", "PHQ9_MODERATE_DEPRESSION"}
        assert len(vitals) + len(assessment) == len(rule_config.active_trigger_rules())

    def test_frozen(self, rule_config):
        with pytest.raises(TypeError):
            rule_config.evidence_rules["X00"] = None

    def test_unknown_plan(self, rule_config):
        assert rule_config.get_plan_pack(None) is None
        assert rule_config.get_plan_pack("NOPE") is None
        assert rule_config.get_completeness_rules("NOPE") == ()


class TestSettings:
    """Tests for settings validation."""

    def test_defaults(self):
        settings = Settings()
        assert settings.readiness_pass_threshold == 80
        assert settings.completeness_weight == 0.40

    def test_weights_must_sum_to_one(self):
        with pytest.raises(PydanticValidationError):
            Settings(completeness_weight=0.5)

    def test_custom_weights(self):
        settings = Settings(
            completeness_weight=0.5, diagnosis_support_weight=0.25, coding_compliance_weight=0.25
        )
        assert settings.completeness_weight == 0.5

    def test_threshold_bounds(self):
        with pytest.raises(PydanticValidationError):
            Settings(readiness_pass_threshold=101)

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("VCE_PRESERVE_MANUAL_CODES", "true")
        assert Settings().preserve_manual_codes is True
