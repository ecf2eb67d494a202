"""
FastAPI application for the task API.

`create_app()` wires settings, storage, the token signer and services
together explicitly; tests build their own app with an in-memory store
and a known secret. Every error leaves through one of the handlers
below as {"success": false, "message": ...}.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskapi import __version__
from taskapi.api.responses import error
from taskapi.api.tasks import router as tasks_router
from taskapi.auth.jwt import TokenSigner
from taskapi.auth.routes import router as users_router
from taskapi.config import Settings, get_settings
from taskapi.core.errors import AppError, AuthenticationError
from taskapi.integrations.sentry import capture_exception, init_sentry
from taskapi.logging_setup import setup_logging
from taskapi.services import TaskService, UserService
from taskapi.storage import StorageProvider, create_local_storage

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare storage and seed the bootstrap admin."""
    settings: Settings = app.state.settings

    await app.state.storage.ensure_indexes()

    if settings.bootstrap_admin_enabled:
        admin = await app.state.user_service.ensure_admin(
            settings.bootstrap_admin_email,
            settings.bootstrap_admin_password,
            settings.bootstrap_admin_name,
        )
        logger.info(f"Bootstrap admin ready: {admin.email}")

    logger.info(f"Task API starting in {settings.environment} mode")

    yield

    logger.info("Task API shutting down")


# =============================================================================
# Error Handlers
# =============================================================================


def _validation_message(exc: RequestValidationError) -> str:
    """First validation problem, phrased for humans."""
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc)
        msg = err.get("msg", "Invalid value")
        return f"{field}: {msg}" if field else msg
    return "Invalid request"


async def handle_app_error(request: Request, exc: AppError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return error(exc.status_code, exc.message, headers=headers)


async def handle_validation_error(request: Request, exc: RequestValidationError):
    return error(400, _validation_message(exc))


async def handle_http_error(request: Request, exc: StarletteHTTPException):
    return error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    capture_exception(exc, path=request.url.path, method=request.method)
    return error(500, "Internal server error")


# =============================================================================
# App Setup
# =============================================================================


def create_app(
    settings: Settings | None = None,
    storage: StorageProvider | None = None,
) -> FastAPI:
    """Build the application with explicit dependencies."""
    settings = settings or get_settings()
    storage = storage or create_local_storage()

    setup_logging(settings.log_level)
    init_sentry(settings)

    app = FastAPI(
        title="Task API",
        description="Multi-user task manager with owner/admin access control",
        version=__version__,
        lifespan=lifespan,
    )

    signer = TokenSigner.from_settings(settings)
    app.state.settings = settings
    app.state.storage = storage
    app.state.signer = signer
    app.state.user_service = UserService(storage, signer, settings.password_hash_iterations)
    app.state.task_service = TaskService(storage)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(users_router)
    app.include_router(tasks_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "task-api"}

    return app
