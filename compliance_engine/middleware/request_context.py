"""
Request correlation middleware.

Takes the caller's request ID (or generates one), binds it to the logging
context for the duration of the request and echoes it on the response.
"""

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from compliance_engine.config.logging import request_id_var, set_request_id
from compliance_engine.constants import REQUEST_ID_HEADER


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request correlation ID to every log event of the request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER)
        token = request_id_var.set("")
        try:
            request_id = set_request_id(incoming)
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)
