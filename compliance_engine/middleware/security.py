"""
Security middleware for the visit compliance engine.

Adds security headers to all responses and enforces request size limits.
"""

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from compliance_engine.audit import AuditEvent, audit_log


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared body size exceeds the configured limit."""

    def __init__(self, app, max_body_size: int = 1024 * 1024) -> None:
        """
        Initialize the middleware.

        Args:
            app: The ASGI application
            max_body_size: Maximum allowed request body size in bytes (default 1MB)
        """
        super().__init__(app)
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_size:
            audit_log(
                AuditEvent.VALIDATION_ERROR,
                success=False,
                error="request_too_large",
                details={"path": request.url.path, "content_length": int(content_length)},
            )
            return JSONResponse(
                status_code=413,
                content={
                    "detail": f"Request body too large. Maximum size is {self.max_body_size} bytes."
                },
            )

        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware that adds security headers to responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"

        return response
