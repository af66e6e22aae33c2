# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application factory for the class application API.

Run with:
    uvicorn src.api.app:create_app --factory --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIASGIMiddleware

from src import __version__
from src.api.dependencies import close_db, init_db
from src.api.middleware.auth import AuthMiddleware, get_current_user
from src.api.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import Settings, get_settings
from src.infrastructure.database import DatabaseError
from src.infrastructure.storage import StorageError
from src.utils.logging import bind_context, clear_context, setup_logging

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and hold the database pool for the process lifetime.

    A database that cannot be reached at startup does not stop the API;
    requests that need it answer 503 until it comes back.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Class application API starting: version=%s environment=%s",
        __version__,
        settings.environment,
    )

    try:
        await init_db()
    except DatabaseError as e:
        logger.warning("Database unavailable at startup: %s", str(e))

    try:
        yield
    finally:
        await close_db()
        logger.info("Class application API stopped")


def _unavailable(component: str, message: str):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("%s failure on %s %s: %s", component, request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": {"kind": "unavailable", "message": message}},
        )

    return handler


def _install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(DatabaseError, _unavailable("Database", "Database unavailable"))
    app.add_exception_handler(StorageError, _unavailable("Storage", "File storage unavailable"))


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    # Starlette runs the most recently added middleware first, so requests
    # pass CORS, then AuthMiddleware, then the limiter (keyed on the user
    # AuthMiddleware attached), then request_context.

    @app.middleware("http")
    async def request_context(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        user = get_current_user(request)
        clear_context()
        bind_context(
            request_id=request_id,
            path=request.url.path,
            user_id=user.id if user is not None else None,
        )
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    app.add_middleware(SlowAPIASGIMiddleware)
    app.add_middleware(AuthMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
        expose_headers=[REQUEST_ID_HEADER],
    )


def create_app() -> FastAPI:
    """Build the API with its routers, middleware and error handlers.

    Interactive docs are served only when ``DEBUG`` is on.
    """
    settings = get_settings()
    docs_enabled = settings.debug

    app = FastAPI(
        title="ClassCrew Class Application API",
        description="Cart-to-enrollment workflow for group course registrations",
        version=__version__,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
        # A 307 to the slash-terminated path would drop the Authorization header.
        redirect_slashes=False,
    )
    app.state.limiter = limiter

    _install_error_handlers(app)
    _install_middleware(app, settings)

    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)
    return app
