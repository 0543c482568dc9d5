import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taskapi.cache.layer import CacheLayer
from taskapi.core.config import Settings, get_settings
from taskapi.core.logging import setup_logging
from taskapi.database import Database
from taskapi.exceptions import (
    AuthenticationError,
    ConflictError,
    ExternalServiceError,
    InvalidTokenError,
    NotFoundError,
    StoreError,
    TaskManagerError,
    ValidationError,
    WeatherAPIError,
)
from taskapi.models import ErrorResponse
from taskapi.routers import attachments, auth, cache, notifications, tasks, weather
from taskapi.storage import FileStorage

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (InvalidTokenError, status.HTTP_403_FORBIDDEN),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
)


def status_for(error: TaskManagerError) -> int:
    if isinstance(error, WeatherAPIError) and error.status_code == 404:
        return status.HTTP_404_NOT_FOUND
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def task_manager_error_handler(request: Request, exc: TaskManagerError):
    code = status_for(exc)
    if isinstance(exc, StoreError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    elif isinstance(exc, ExternalServiceError):
        logger.warning(f"{request.method} {request.url.path} upstream failure: {exc.message}")

    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=code,
        content=ErrorResponse(error=exc.message).model_dump(exclude_none=True),
        headers=headers,
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=message).model_dump(exclude_none=True),
    )


def create_app(
    settings: Settings | None = None,
    *,
    cache_layer: CacheLayer | None = None,
    database: Database | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """
    Build the application.

    Shared resources are constructed here and owned by the app; tests pass
    their own ``cache_layer``, ``database`` or ``http_client``.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database(settings.database_url, echo=settings.database_echo)
        await db.connect()
        if settings.create_tables_on_startup:
            await db.create_tables()

        cache_ = cache_layer or CacheLayer(settings)
        await cache_.init_cache()

        file_storage = FileStorage(
            settings.upload_dir, settings.max_upload_bytes, settings.allowed_upload_types
        )
        file_storage.ensure_directory()

        client = http_client or httpx.AsyncClient(timeout=settings.weather_timeout_seconds)

        app.state.settings = settings
        app.state.database = db
        app.state.cache = cache_
        app.state.file_storage = file_storage
        app.state.http_client = client
        logger.info(f"{settings.app_name} started")

        yield

        if http_client is None:
            await client.aclose()
        await cache_.close()
        await db.dispose()
        logger.info(f"{settings.app_name} stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Async task management API with SQLModel and an optional Redis cache",
        swagger_ui_parameters={"displayRequestDuration": True},
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(TaskManagerError, task_manager_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)

    # Include routers
    app.include_router(tasks.router)
    app.include_router(attachments.router)
    app.include_router(auth.router)
    app.include_router(cache.router)
    app.include_router(notifications.router)
    app.include_router(weather.router)

    @app.get("/")
    async def root():
        return {
            "message": "Welcome to Task Management API",
            "docs": "/docs",
            "version": "1.0.0",
        }

    @app.get("/health")
    async def health_check(request: Request):
        return {"status": "ok", "cache": request.app.state.cache.is_available()}

    return app
