"""
StorySnap Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       uvicorn serves the module-level `app` (uvicorn storysnap.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Access Log → GZip → CORS      │
    │                                                          │
    │  Routes:                                                 │
    │   /api/stories…   /api/admin/…   /api/auth/sync          │
    │   /api/user/update   /api/translate   /api/upload        │
    │   /api/files/…   /health                                 │
    │                                                          │
    │  Exception Handlers (JSON error envelope):               │
    │   Validation→400  Authorization→403  NotFound→404        │
    │   Configuration / Upstream / Storage / Database→500      │
    └──────────────────────────────────────────────────────────┘

Error envelope:
    {"error": "<code>", "message": "...", "details": ..., "request_id": "..."}
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from storysnap import __version__
from storysnap.config import settings
from storysnap.database import dispose_engine
from storysnap.exceptions import (
    AuthorizationError,
    ConfigurationError,
    DatabaseError,
    ImageStorageError,
    NotFoundError,
    StorySnapError,
    UpstreamServiceError,
    ValidationError,
)
from storysnap.middleware.logging import RequestLoggingMiddleware
from storysnap.middleware.request_id import RequestIDMiddleware, request_id_var
from storysnap.routes import admin, health, stories, translate, upload, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Format: 2025-01-15T12:00:00 [INFO] storysnap.access: GET /api/stories 200 …
    Third-party loggers that chatter at INFO per operation are raised to WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("StorySnap Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: stories, users and moderation work without
        # the external services, and /health reports what is missing.
        logger.error("Configuration error: %s", str(e))

    logger.info("Image backend: %s", settings.image_backend)
    if settings.image_backend == "local":
        storage = Path(settings.storage_root)
        storage.mkdir(parents=True, exist_ok=True)
        logger.info("Storage directory: %s", storage.resolve())

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("StorySnap Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(status_code: int, error: str, message: str, details=None) -> JSONResponse:
    content = {
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map StorySnapError subclasses to HTTP responses.

        ValidationError / RequestValidationError → 400 validation_error
        AuthorizationError                       → 403 forbidden
        NotFoundError                            → 404 not_found
        ConfigurationError                       → 500 configuration_error
        UpstreamServiceError                     → 500 upstream_error (+ details)
        ImageStorageError / DatabaseError        → 500 server_error
        StorySnapError / Exception               → 500 internal_server_error

    Database and storage failures answer with a generic message; the
    specifics are logged with the request ID.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), errors)
        return error_response(400, "validation_error", "Invalid request", {"errors": errors})

    @app.exception_handler(AuthorizationError)
    async def handle_authorization_error(request: Request, exc: AuthorizationError):
        logger.warning("[%s] Authorization refused: %s", request_id_var.get(""), exc.context)
        return error_response(403, "forbidden", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(404, "not_found", exc.message)

    @app.exception_handler(ConfigurationError)
    async def handle_configuration_error(request: Request, exc: ConfigurationError):
        logger.error("[%s] %s", request_id_var.get(""), exc.message)
        return error_response(500, "configuration_error", exc.message)

    @app.exception_handler(UpstreamServiceError)
    async def handle_upstream_error(request: Request, exc: UpstreamServiceError):
        logger.error(
            "[%s] Upstream %s failed: %s | %s",
            request_id_var.get(""),
            exc.service,
            exc.message,
            exc.details,
        )
        return error_response(500, "upstream_error", exc.message, exc.details)

    @app.exception_handler(ImageStorageError)
    async def handle_image_storage_error(request: Request, exc: ImageStorageError):
        logger.error("[%s] Image storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return error_response(500, "server_error", "Image could not be stored. Please try again later.")

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return error_response(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(StorySnapError)
    async def handle_storysnap_error(request: Request, exc: StorySnapError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return error_response(500, "internal_server_error", "An unexpected error occurred.")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="StorySnap API",
        description=(
            "Community history stories: moderated submissions, an approved feed, "
            "one-vote-per-user upvotes, translation and image uploads."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Exception Handlers ────────────────────────────────────────────────
    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(stories.router)
    app.include_router(admin.router)
    app.include_router(users.router)
    app.include_router(translate.router)
    app.include_router(upload.router)
    app.include_router(health.router)

    return app


app = create_app()
