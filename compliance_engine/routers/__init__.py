"""
API routers for the visit compliance engine.
"""

from compliance_engine.routers.billing import router as billing_router
from compliance_engine.routers.coding import router as coding_router
from compliance_engine.routers.health import router as health_router
from compliance_engine.routers.recommendations import router as recommendations_router
from compliance_engine.routers.rules import router as rules_router
from compliance_engine.routers.visits import router as visits_router

__all__ = [
    "billing_router",
    "coding_router",
    "health_router",
    "recommendations_router",
    "rules_router",
    "visits_router",
]
