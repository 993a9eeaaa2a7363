"""
AtlasPM Backend — Rate Limiting Middleware
===========================================

What:  Per-IP sliding-window request limiter.
Why:   Keeps one misbehaving client (a runaway sync script, a stuck retry
       loop after repeated 409s) from starving everyone else of database
       connections.
How:   Keeps the timestamps of each IP's requests inside the window. A
       request that would exceed RATE_LIMIT_REQUESTS within
       RATE_LIMIT_WINDOW seconds is answered with 429 and Retry-After.

Limits are per process. With several workers each enforces its own window.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from atlaspm.config import settings
from atlaspm.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        limit:  Max requests per window (default: settings.rate_limit_requests)
        window: Window length in seconds (default: settings.rate_limit_window)
    """

    EXCLUDED_PATHS = {"/health", "/v1/healthcheck", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, limit: Optional[int] = None, window: Optional[int] = None):
        super().__init__(app)
        self.limit = limit if limit is not None else settings.rate_limit_requests
        self.window = window if window is not None else settings.rate_limit_window
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window

        recent = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = recent

        if len(recent) >= self.limit:
            retry_after = int(recent[0] + self.window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip, len(recent), self.window,
            )
            return self._reject(RateLimitExceededError(retry_after=retry_after))

        recent.append(now)

        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    @staticmethod
    def _reject(exc: RateLimitExceededError) -> JSONResponse:
        # Runs outside the exception handlers and before a request id is assigned
        return JSONResponse(
            status_code=429,
            content={
                "error": "rate_limit_exceeded",
                "message": exc.message,
                "details": exc.context,
                "request_id": None,
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive = [
            ip for ip, stamps in self._requests.items()
            if not stamps or stamps[-1] < window_start
        ]
        for ip in inactive:
            del self._requests[ip]
        if inactive:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive))
