"""
Tests for coding router endpoints.
"""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from compliance_engine.routers.coding import router
from conftest import VISIT_ID, make_visit

BASE = f"/api/visits/{VISIT_ID}"


@pytest.fixture
def app():
    """Create test FastAPI app with coding router."""
    app = FastAPI()
    app.include_router(router)
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def visit(store, normal_vitals, diabetes_medication):
    async def seed():
        await store.save_visit(make_visit())
        await store.save_vitals(normal_vitals)
        await store.save_medication(diabetes_medication)

    asyncio.run(seed())
    return store


def _generate(client) -> list[dict]:
    response = client.post(f"{BASE}/codes/generate")
    assert response.status_code == 200
    return response.json()["codes"]


class TestGenerateCodes:
    """Tests for POST /api/visits/{visit_id}/codes/generate."""

    def test_generate_without_body(self, client, visit):
        """Should generate the base codes for an annual wellness visit."""
        codes = _generate(client)
        assert [c["code"] for c in codes] == ["99387", "G0438", "Z00.00"]
        assert all(c["auto_assigned"] for c in codes)

    def test_generate_preserving_manual(self, client, visit):
        client.post(
            f"{BASE}/codes",
            json={"code_type": "ICD-10", "code": "E11.9", "description": "Type 2 diabetes"},
        )
        response = client.post(f"{BASE}/codes/generate", json={"preserve_manual_codes": True})
        assert [c["code"] for c in response.json()["codes"]][0] == "E11.9"

    def test_list_codes(self, client, visit):
        _generate(client)
        response = client.get(f"{BASE}/codes")
        assert response.status_code == 200
        assert len(response.json()["codes"]) == 3

    def test_unknown_visit(self, client, store):
        response = client.post("/api/visits/missing/codes/generate")
        assert response.status_code == 404


class TestManualCodeEndpoints:
    """Tests for add, swap, remove and verify."""

    def test_add_code(self, client, visit):
        response = client.post(
            f"{BASE}/codes",
            json={"code_type": "ICD-10", "code": "e11.9", "description": "Type 2 diabetes"},
            headers={"X-User-Id": "np-1"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "E11.9"
        assert data["source"] == "manual"

    def test_add_invalid_code(self, client, visit):
        """Should return 400 for a malformed code."""
        response = client.post(
            f"{BASE}/codes", json={"code_type": "CPT", "code": "12", "description": "Bad"}
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "InvalidCodeError"

    def test_add_duplicate(self, client, visit):
        """Should return 409 for a code already active on the visit."""
        _generate(client)
        response = client.post(
            f"{BASE}/codes", json={"code_type": "CPT", "code": "99387", "description": "Dup"}
        )
        assert response.status_code == 409

    def test_swap_remove_verify(self, client, visit):
        codes = _generate(client)
        exam_id = codes[2]["id"]

        response = client.post(
            f"{BASE}/codes/{exam_id}/swap",
            json={"new_code": "Z00.01", "new_description": "Exam with abnormal findings"},
        )
        assert response.status_code == 200
        assert response.json()["code"] == "Z00.01"

        response = client.post(f"{BASE}/codes/{exam_id}/verify")
        assert response.json()["verified"] is True

        response = client.post(f"{BASE}/codes/{exam_id}/verify", json={"verified": False})
        assert response.json()["verified"] is False

        response = client.post(f"{BASE}/codes/{exam_id}/remove")
        assert response.json()["removed_by_np"] is True

    def test_unknown_code(self, client, visit):
        response = client.post(f"{BASE}/codes/missing/verify")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "VisitCodeNotFoundError"


class TestEvidenceEndpoint:
    """Tests for GET /api/visits/{visit_id}/evidence."""

    def test_validate_evidence(self, client, visit):
        """Should report per-item evidence for each active diagnosis."""
        client.post(
            f"{BASE}/codes",
            json={"code_type": "ICD-10", "code": "E11.9", "description": "Type 2 diabetes"},
        )

        response = client.get(f"{BASE}/evidence")

        assert response.status_code == 200
        [result] = response.json()["results"]
        assert result["icd_code"] == "E11.9"
        assert result["status"] == "partial"
        assert [item["met"] for item in result["items"]] == [False, True, True]
