# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SchoolBoard API application.

Run with:
    uvicorn src.api.app:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src import __version__
from src.api.middleware.auth import AuthMiddleware
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.core.config.settings import Settings
from src.infrastructure.cache import RedisError, close_redis, init_redis
from src.infrastructure.database import DatabaseError, close_database, init_database
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


async def _start_cache(settings: Settings) -> None:
    if not settings.performance.cache_enabled:
        logger.info("Performance cache disabled by configuration")
        return
    try:
        await init_redis(settings)
    except RedisError as e:
        logger.warning("Performance cache unavailable, reading from database: %s", str(e))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database engine and the optional cache for the app's lifetime."""
    settings = get_settings()
    setup_logging(settings)
    logger.info("Starting SchoolBoard API %s (%s)", __version__, settings.environment)

    await init_database(settings)
    await _start_cache(settings)
    try:
        yield
    finally:
        await close_redis()
        await close_database()
        logger.info("SchoolBoard API stopped")


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "The database is unavailable, try again shortly"},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    expose_docs = settings.debug or not settings.is_production

    app = FastAPI(
        title="SchoolBoard API",
        summary="Curriculum, rosters, grades and term performance for one school",
        version=__version__,
        docs_url="/docs" if expose_docs else None,
        redoc_url="/redoc" if expose_docs else None,
        openapi_url="/openapi.json" if expose_docs else None,
        lifespan=lifespan,
    )
    app.add_exception_handler(DatabaseError, database_error_handler)

    # Starlette runs the last added middleware first: CORS answers
    # preflight requests before authentication sees them.
    app.add_middleware(AuthMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
        expose_headers=["X-Request-ID"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)
    return app
