"""
Lime Core Backend — Request Logging Middleware
================================================

What:  One access line per HTTP request, tagged with the request ID and,
       for tenant-scoped routes, the organization the request acted on.
How:   Times `call_next`, then logs at a level chosen from the status code.
       The tenant is read from `request.state.organization_id`, which
       `dependencies.get_organization_id` sets once the token is verified.

Line format:
    GET /segments 200 12.3ms [a1b2c3d4] org=5f0c... from 10.0.0.7

Privacy:
    Logged: method, path, status, duration, IP, request ID, organization id
    Not logged: request bodies (credentials, message content), Authorization
    headers, query strings (the OAuth callback carries codes in them)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from lime_core.middleware.request_id import request_id_var

logger = logging.getLogger("lime.access")


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    # Probes hit these every few seconds
    SILENT_PATHS = {"/health"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.SILENT_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        organization_id = getattr(request.state, "organization_id", None) or "-"
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        logger.log(
            level_for_status(response.status_code),
            "%s %s %d %.1fms [%s] org=%s from %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            rid,
            organization_id,
            client_ip,
            extra={
                "request_id": rid,
                "organization_id": organization_id,
                "status": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        return response
