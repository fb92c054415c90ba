"""
Middleware for the visit compliance engine.
"""

from compliance_engine.middleware.request_context import RequestContextMiddleware
from compliance_engine.middleware.security import (
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)

__all__ = ["RequestContextMiddleware", "RequestSizeLimitMiddleware", "SecurityHeadersMiddleware"]
