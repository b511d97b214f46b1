"""
Lime Core Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers.
Who:   uvicorn (`uvicorn lime_core.main:app`), and tests via create_app().

Application Architecture:
    ┌───────────────────────────────────────────────────────┐
    │                     FastAPI App                       │
    │                                                       │
    │  Middleware Chain:                                    │
    │  ┌──────────────┐ ┌──────────┐ ┌──────────────────┐   │
    │  │   Req ID     │→│Rate Limit│→│  Access Logging  │   │
    │  └──────────────┘ └──────────┘ └──────────────────┘   │
    │                                                       │
    │  Routers:                                             │
    │  /auth   /segments   /templates   /health             │
    │                                                       │
    │  Exception Handlers (all answer with the envelope):   │
    │  LimeError → own status │ validation → 400            │
    │  HTTPException → own status │ anything else → 500     │
    └───────────────────────────────────────────────────────┘

Faults raised inside a handler body are translated by `envelope.respond`.
The handlers registered here cover what happens before or around it:
token checks, request validation, unknown routes, middleware.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Iterable

import pydantic
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from lime_core import __version__
from lime_core.config import settings
from lime_core.database import dispose_engine
from lime_core.envelope import DEFAULT_FALLBACK_MESSAGE, error_response, fault_response
from lime_core.exceptions import LimeError
from lime_core.middleware.logging import RequestLoggingMiddleware
from lime_core.middleware.rate_limit import RateLimitMiddleware
from lime_core.middleware.request_id import RequestIDMiddleware, request_id_var
from lime_core.routes import auth, health, segments, templates

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once per process.

    Format: 2026-01-01T12:00:00 [INFO] lime_core.services.x: message
    Request IDs are embedded in messages by the code that logs them.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Chatty third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: logging and config checks. Shutdown: close pooled connections."""
    setup_logging()
    logger.info("=" * 60)
    logger.info("Lime Core Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: password auth and CRUD work without Google settings
        logger.warning("%s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Lime Core Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def describe_validation_errors(errors: Iterable[Dict[str, Any]]) -> str:
    """
    Flatten Pydantic error entries into one message.

    Example: "Invalid request: name: Field required; limit: Input should be
    less than or equal to 500"
    """
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        msg = err.get("msg", "invalid value")
        parts.append(f"{field}: {msg}" if field else msg)
    if not parts:
        return "Invalid request"
    return "Invalid request: " + "; ".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map faults raised outside a handler body to error envelopes.

    Handler hierarchy:
        LimeError (and subclasses)  → exc.status_code, exc.message
        RequestValidationError      → 400, flattened field errors
        pydantic.ValidationError    → 400 (query models built via Depends())
        HTTPException               → exc.status_code, exc.detail
        Exception                   → 500, generic message (details logged)
    """

    @app.exception_handler(LimeError)
    async def handle_lime_error(request: Request, exc: LimeError):
        return fault_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        message = describe_validation_errors(exc.errors())
        logger.warning("[%s] %s", request_id_var.get(""), message)
        return error_response(message, status_code=400)

    @app.exception_handler(pydantic.ValidationError)
    async def handle_model_validation(request: Request, exc: pydantic.ValidationError):
        message = describe_validation_errors(exc.errors())
        logger.warning("[%s] %s", request_id_var.get(""), message)
        return error_response(message, status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return error_response(
            str(exc.detail) if exc.detail else DEFAULT_FALLBACK_MESSAGE,
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return error_response(DEFAULT_FALLBACK_MESSAGE, status_code=500)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Lime Core API",
        description=(
            "Multi-tenant marketing backend: messaging templates, audience "
            "segments and sign-in. Every response except /health and the "
            "Google redirects is a {status, data, message} envelope."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: RequestID → RateLimit → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routers ───────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(segments.router)
    app.include_router(templates.router)
    app.include_router(health.router)

    return app


app = create_app()
