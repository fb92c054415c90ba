"""
Tests for the rules summary and health endpoints.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from compliance_engine.constants import SERVICE_NAME, SERVICE_VERSION
from compliance_engine.routers.health import router as health_router
from compliance_engine.routers.rules import router as rules_router


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(health_router)
    app.include_router(rules_router)
    return TestClient(app)


class TestHealth:
    """Tests for GET /health."""

    def test_health(self, client, rule_config):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == SERVICE_NAME
        assert data["version"] == SERVICE_VERSION
        assert data["trigger_rules_loaded"] == len(rule_config.trigger_rules)
        assert data["evidence_rules_loaded"] == len(rule_config.evidence_rules)


class TestRulesSummary:
    """Tests for GET /api/rules/summary."""

    def test_summary(self, client, rule_config):
        """Should count rules by source and list plan packs sorted by ID."""
        response = client.get("/api/rules/summary")

        assert response.status_code == 200
        data = response.json()
        assert set(data["trigger_rules"]) == {"vitals", "assessment"}
        assert data["trigger_rules_total"] == len(rule_config.trigger_rules)
        assert data["evidence_rules"] == len(rule_config.evidence_rules)
        assert [p["plan_id"] for p in data["plan_packs"]] == ["ACA-PLAN-001", "MA-PLAN-001"]

        ma = data["plan_packs"][1]
        assert ma["required_assessments"] == ["PHQ-2", "PRAPARE", "AWV"]
        assert ma["completeness_rules"] == 8
