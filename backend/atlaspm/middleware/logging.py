"""
AtlasPM Backend — Request Logging Middleware
=============================================

What:  One access-log line per HTTP request on the `atlaspm.access` logger.
How:   Measures wall time around the downstream app and logs method, path,
       status, duration, request id and client address.

Log levels:
    5xx → ERROR     (needs investigation)
    4xx → WARNING   (409 edit conflicts show up here; a burst of them
                     means users are fighting over the same records)
    else → INFO

Health probes are not logged; they fire every few seconds.

Privacy: request bodies are never logged (user records carry passwords).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from atlaspm.middleware.request_id import request_id_var

logger = logging.getLogger("atlaspm.access")

QUIET_PATHS = {"/health", "/v1/healthcheck"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
