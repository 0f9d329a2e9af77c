"""
Botanica Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn botanica.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐       │
    │  │  Req ID      │→│ RateLim  │→│  Access log     │       │
    │  └──────────────┘ └──────────┘ └─────────────────┘       │
    │                                                          │
    │  Routes:                                                 │
    │  ┌──────────────┐ ┌──────────────┐ ┌────────────────┐    │
    │  │ /api/plants  │ │ /api/admin/* │ │ /api/files/*   │    │
    │  │ /api/categ.. │ │ (admin gate) │ │ /health        │    │
    │  └──────────────┘ └──────────────┘ └────────────────┘    │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ Validation→400 │ Auth→401/403 │ Conflict→409 │ ... │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Report missing OAuth configuration (non-fatal)
    3. Create the image bucket directory
    4. Subscribe the audit logger to sign-in / sign-out events

    Shutdown:
    1. Unsubscribe the audit logger
    2. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from botanica import __version__
from botanica.config import settings
from botanica.database import dispose_engine
from botanica.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    BotanicaError,
    ConflictError,
    DatabaseError,
    FileStorageError,
    IdentityProviderError,
    NotFoundError,
    StorageBucketNotFoundError,
    StoragePermissionError,
    UploadTimeoutError,
    ValidationError,
)
from botanica.middleware.logging import RequestLoggingMiddleware
from botanica.middleware.rate_limit import RateLimitMiddleware
from botanica.middleware.request_id import RequestIDMiddleware, request_id_var
from botanica.routes import admin, auth, files, health, images, plants
from botanica.services.local_storage import object_storage
from botanica.services.session_context import AuthEvent, Session, session_context

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("botanica.audit")


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] botanica.services.plant_service: Plant created: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def audit_auth_event(event: AuthEvent, session: Session) -> None:
    """SessionContext listener: one audit line per sign-in / sign-out."""
    audit_logger.info("%s email=%s sid=%s", event.value, session.email, session.sid[:8])


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Botanica Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Catalog and health keep working; only admin sign-in is unavailable
        logger.error("Configuration error: %s", str(e))

    if settings.storage_create_bucket:
        await object_storage.create_bucket()
    logger.info("Image bucket: %s", object_storage.bucket_dir)

    unsubscribe = session_context.subscribe(audit_auth_event)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Botanica Backend shutting down...")
    unsubscribe()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": details or None,
            "request_id": request_id_var.get(""),
        },
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy (most specific class wins):
        ValidationError              → 400
        AuthenticationError          → 401 (+ WWW-Authenticate, login_url)
        AccessDeniedError            → 403 (login_url)
        NotFoundError                → 404
        ConflictError                → 409
        IdentityProviderError        → 502
        StorageBucketNotFoundError   → 503
        StoragePermissionError       → 503
        UploadTimeoutError           → 504
        FileStorageError             → 500
        DatabaseError                → 500 (message only; context logged)
        BotanicaError (base)         → 500
        Exception (fallback)         → 500
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(
            401,
            "authentication_required",
            exc.message,
            exc.context,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(AccessDeniedError)
    async def handle_access_denied(request: Request, exc: AccessDeniedError):
        logger.warning("[%s] Admin access denied for %s", request_id_var.get(""), exc.email)
        return _error_response(403, "access_denied", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(409, "conflict", exc.message)

    @app.exception_handler(IdentityProviderError)
    async def handle_identity_provider_error(request: Request, exc: IdentityProviderError):
        logger.error("[%s] Identity provider error: %s | Context: %s",
                     request_id_var.get(""), exc.message, exc.context)
        return _error_response(502, "identity_provider_error", exc.message)

    @app.exception_handler(StorageBucketNotFoundError)
    @app.exception_handler(StoragePermissionError)
    async def handle_storage_unavailable(request: Request, exc: FileStorageError):
        logger.error("[%s] Storage unavailable: %s", request_id_var.get(""), exc.message)
        return _error_response(503, "storage_unavailable", exc.message, exc.context)

    @app.exception_handler(UploadTimeoutError)
    async def handle_upload_timeout(request: Request, exc: UploadTimeoutError):
        return _error_response(504, "upload_timeout", exc.message, exc.context)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("[%s] File storage error: %s | Context: %s",
                     request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "storage_error", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s",
                     request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(BotanicaError)
    async def handle_application_error(request: Request, exc: BotanicaError):
        logger.error("[%s] Application error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Botanica API",
        description=(
            "Plant inventory service: a public botanical catalog plus an admin area "
            "for plant records, images and stock tracking."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → RateLimit → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(plants.router)
    app.include_router(auth.router)
    app.include_router(admin.router)
    app.include_router(images.router)
    app.include_router(files.router)
    app.include_router(health.router)

    return app


app = create_app()
