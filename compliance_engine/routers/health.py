"""
Health check endpoints.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from compliance_engine.constants import SERVICE_NAME, SERVICE_VERSION
from compliance_engine.config.rules import get_rule_config

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str
    trigger_rules_loaded: int
    evidence_rules_loaded: int


@router.get("/health")
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns the service status and the size of the loaded rule configuration.
    """
    config = get_rule_config()
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        trigger_rules_loaded=len(config.trigger_rules),
        evidence_rules_loaded=len(config.evidence_rules),
    ).model_dump()
