"""
Lime Core Backend — Health Check Route
========================================

What:  Liveness/readiness probe for Docker and load balancers.
How:   Runs `SELECT 1` against the engine. The document is returned bare
       (not enveloped) and the HTTP status is 503 when the database is down,
       so probes can act on the status code alone.
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from lime_core import __version__
from lime_core.routing import Route, register_routes
from lime_core.schemas.envelope import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        from lime_core.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )


ROUTES = [
    Route("GET", "/health", health_check, HealthResponse, 200, "Service health check",
          {503: {"description": "Database unreachable", "model": HealthResponse}}),
]

register_routes(router, ROUTES)
