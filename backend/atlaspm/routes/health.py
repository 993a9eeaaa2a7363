"""
AtlasPM Backend — Health Check Route
=====================================

What:  Health check endpoints for monitoring and load balancer probes.
Why:   Load balancers route away from instances that cannot serve traffic.
How:   Probes the database with SELECT 1 and reports the aggregate status.
When:  Periodically (e.g., every 30 seconds by Docker, every 10 seconds by LB).

Two paths serve the same report:
    GET /health          → container/orchestrator probes
    GET /v1/healthcheck  → API clients that only talk to /v1

Status levels:
    - healthy:   Database reachable (HTTP 200)
    - unhealthy: Database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Request, Response, status
from sqlalchemy.exc import SQLAlchemyError

from atlaspm import __version__
from atlaspm.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


async def _report(request: Request, response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        await request.app.state.db.ping()
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Returns the health status of the backend and its database.",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    return await _report(request, response)


@router.get(
    "/v1/healthcheck",
    response_model=HealthResponse,
    summary="Service health check (versioned path)",
)
async def versioned_health_check(request: Request, response: Response) -> HealthResponse:
    return await _report(request, response)
