"""
Lime Core Backend — Route Tables
==================================

What:  Declares routes as data: (method, path, handler, response model,
       status, summary). Each routes module builds a list of `Route`
       entries and registers them on its APIRouter with `register_routes`.
How:   Thin wrapper over `APIRouter.add_api_route`; request validation stays
       in the handler signature (Pydantic bodies, `Depends()` query models),
       so it runs before the handler body.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional

from fastapi import APIRouter

from lime_core.schemas.envelope import ApiResponse


@dataclass(frozen=True)
class Route:
    method: str
    path: str
    endpoint: Callable[..., Any]
    response_model: Any = None
    status_code: int = 200
    summary: Optional[str] = None
    responses: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    include_in_schema: bool = True


def error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """OpenAPI entries documenting the error envelope for the given statuses."""
    descriptions = {
        400: "Invalid request",
        401: "Missing or invalid token",
        403: "No active organization",
        404: "Resource not found",
        429: "Rate limit exceeded",
        500: "Server error",
        502: "Identity provider error",
    }
    return {
        code: {"description": descriptions.get(code, "Error"), "model": ApiResponse[None]}
        for code in status_codes
    }


def register_routes(router: APIRouter, routes: Iterable[Route]) -> APIRouter:
    """Add every entry of a route table to `router`, in table order."""
    for route in routes:
        router.add_api_route(
            route.path,
            route.endpoint,
            methods=[route.method],
            response_model=route.response_model,
            status_code=route.status_code,
            summary=route.summary,
            responses=route.responses or None,
            include_in_schema=route.include_in_schema,
        )
    return router
