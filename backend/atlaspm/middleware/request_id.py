"""
AtlasPM Backend — Request ID Middleware
========================================

What:  Assigns a short correlation id to each request and returns it in the
       X-Request-ID response header.
Why:   Every log line and every error body for one request carries the same
       id, so a support ticket quoting it leads straight to the logs.
How:   Reuses the caller's X-Request-ID if sent, otherwise generates one;
       stores it in a ContextVar that loggers and exception handlers read.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagates or generates X-Request-ID for the request/response pair."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
