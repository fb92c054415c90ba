"""Configuration modules for the visit compliance engine."""

from compliance_engine.config.logging import configure_logging, get_logger
from compliance_engine.config.rules import (
    RuleConfiguration,
    get_rule_config,
    load_config,
    reload_config,
    reset_rule_config,
)
from compliance_engine.config.settings import Settings, get_settings, reset_settings

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
    "RuleConfiguration",
    "get_rule_config",
    "load_config",
    "reload_config",
    "reset_rule_config",
    "configure_logging",
    "get_logger",
]
