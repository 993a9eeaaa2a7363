"""
AtlasPM Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
Why:   Middleware, error mapping, routes and the database handle are wired
       in one place, so tests can build an app around their own database.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn atlaspm.main:app).

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware Chain:                                        │
    │  ┌────────────┐ ┌──────────┐ ┌─────────┐                  │
    │  │ Rate Limit │→│ Req ID   │→│ Logging │                  │
    │  └────────────┘ └──────────┘ └─────────┘                  │
    │                                                           │
    │  Routes (/v1):                                            │
    │  project · client · proposal · role · activity · user ·   │
    │  timesheet · healthcheck                                  │
    │                                                           │
    │  Exception Handlers:                                      │
    │  ┌─────────────────────────────────────────────────────┐  │
    │  │ Validation→422 │ BadRequest→400 │ NotFound→404      │  │
    │  │ EditConflict→409 │ DuplicateKey→422 │ Store→500     │  │
    │  └─────────────────────────────────────────────────────┘  │
    │                                                           │
    │  app.state.db: Database (engine + session factory)        │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, validate configuration (log, don't exit)
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from atlaspm import __version__
from atlaspm.config import settings
from atlaspm.database import Database
from atlaspm.exceptions import (
    AtlasPMError,
    BadRequestError,
    DuplicateKeyError,
    EditConflictError,
    NotFoundError,
    RateLimitExceededError,
    StoreError,
    ValidationError,
)
from atlaspm.middleware.logging import RequestLoggingMiddleware
from atlaspm.middleware.rate_limit import RateLimitMiddleware
from atlaspm.middleware.request_id import RequestIDMiddleware, request_id_var
from atlaspm.routes import (
    activities,
    clients,
    health,
    projects,
    proposals,
    roles,
    timesheets,
    users,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("AtlasPM Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks report the problem
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("AtlasPM Backend shutting down...")
    await app.state.db.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, exc: AtlasPMError, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": exc.message,
            "details": details,
            "request_id": request_id_var.get(""),
        },
    )


def _field_details(exc: AtlasPMError):
    fields = exc.context.get("fields")
    return {"fields": fields} if fields else None


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map every AtlasPM error kind to its HTTP status and error code.

    Handler hierarchy:
        ValidationError         → 422 validation_error
        RequestValidationError  → 422 validation_error (schema failures)
        BadRequestError         → 400 bad_request
        NotFoundError           → 404 not_found
        EditConflictError       → 409 edit_conflict
        DuplicateKeyError       → 422 duplicate_key
        RateLimitExceededError  → 429 rate_limit_exceeded
        StoreError              → 500 server_error
        AtlasPMError (base)     → 500 server_error
        Exception (fallback)    → 500 internal_server_error

    Security: SQL, constraint names and stack traces are logged, never
    returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.fields or exc.message)
        return _error_response(422, "validation_error", exc, _field_details(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Schema failures in the same body shape as our own ValidationError."""
        fields = {}
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
            fields.setdefault(".".join(loc) or "request", err.get("msg", "invalid value"))
        return _error_response(
            422,
            "validation_error",
            ValidationError(fields=fields),
            {"fields": fields},
        )

    @app.exception_handler(BadRequestError)
    async def handle_bad_request(request: Request, exc: BadRequestError):
        return _error_response(400, "bad_request", exc)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc)

    @app.exception_handler(EditConflictError)
    async def handle_edit_conflict(request: Request, exc: EditConflictError):
        logger.info(
            "[%s] Edit conflict on %s: %s",
            request_id_var.get(""), exc.resource, exc.context,
        )
        return _error_response(409, "edit_conflict", exc)

    @app.exception_handler(DuplicateKeyError)
    async def handle_duplicate_key(request: Request, exc: DuplicateKeyError):
        return _error_response(422, "duplicate_key", exc, _field_details(exc))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        response = _error_response(429, "rate_limit_exceeded", exc, exc.context)
        response.headers["Retry-After"] = str(exc.retry_after)
        return response

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError):
        rid = request_id_var.get("")
        logger.error("[%s] Store error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, "server_error", exc)

    @app.exception_handler(AtlasPMError)
    async def handle_atlaspm_error(request: Request, exc: AtlasPMError):
        logger.error("[%s] Unclassified error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, "server_error", exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all; the stack trace goes to the log, never the client."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "details": None,
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        database: Handle to serve from. Defaults to one built from settings;
                  tests pass a handle over a temporary SQLite file.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="AtlasPM API",
        description=(
            "Project-management backend: projects, clients, proposals, roles, "
            "activities, users and timesheets, with optimistic-concurrency updates."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.db = database or Database.from_settings()

    # ── Register Middleware ───────────────────────────────────────────────
    # Executed in reverse order of addition: RateLimit runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After", "Location"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    for module in (projects, clients, proposals, roles, activities, users, timesheets, health):
        app.include_router(module.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `atlaspm.main:app` to be importable
app = create_app()
