from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .cache import TaskCache
from .errors import TaskTrackerError, ValidationError
from .passwords import PasswordHasher
from .repositories import Stores, open_stores
from .routers import auth as auth_router
from .routers import tasks as tasks_router
from .schemas import HealthResponse
from .services import AuthService, TaskService
from .settings import Settings, get_settings, load_settings
from .tokens import TokenService

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "User signup and login; both return bearer tokens."},
    {
        "name": "tasks",
        "description": "CRUD operations on the authenticated user's own tasks.",
    },
]


def _wire_services(app: FastAPI, settings: Settings, stores: Stores) -> None:
    tokens = TokenService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(seconds=settings.token_ttl_seconds),
    )
    app.state.tokens = tokens
    app.state.task_service = TaskService(stores.tasks, TaskCache(ttl_seconds=settings.cache_ttl_seconds))
    app.state.auth_service = AuthService(stores.users, PasswordHasher(), tokens)


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, stores: Optional[Stores] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Stores are opened in the lifespan, so a missing or unusable DATABASE_URL
    fails application startup (ConfigurationError) rather than import. Pass
    ``stores`` to wire pre-built stores instead.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.uses_default_secret:
            logger.warning("JWT_SECRET is not set; signing tokens with the insecure built-in default")
        _wire_services(app, settings, stores or open_stores(settings.database_url))
        logger.info("Task tracker ready (store: %s)", "injected" if stores else settings.database_url)
        yield

    app = FastAPI(
        title="Task Tracker Backend",
        description="Backend API service for per-user task tracking with bearer token authentication.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return request validation errors in the same shape as service-level ones.

        Response format:
            {
                "error": "ValidationError",
                "message": "Request validation failed",
                "errors": [{"field": ..., "message": ..., "location": ...}, ...]
            }
        """
        error = ValidationError.from_pydantic(exc.errors())
        return JSONResponse(status_code=error.status_code, content=error.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Unknown routes (404) and wrong methods (405) use the same error shape.
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(TaskTrackerError)
    async def task_tracker_exception_handler(request: Request, exc: TaskTrackerError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # PUBLIC_INTERFACE
    @app.get("/health", response_model=HealthResponse, summary="Health Check", tags=["health"])
    def health_check() -> HealthResponse:
        """
        Health check endpoint.

        Returns:
            Status, seconds since startup and the current server time.
        """
        return HealthResponse(
            status="ok",
            uptime=time.monotonic() - app.state.started_at,
            timestamp=datetime.now(timezone.utc),
        )

    app.include_router(auth_router.router)
    app.include_router(tasks_router.router)
    return app


app = create_app(load_settings())
