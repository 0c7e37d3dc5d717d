"""FastAPI application entry point for the CineJournal backend.

This module initializes the FastAPI application with all routes, middleware,
and lifecycle management, including the daily trending retention sweep.
"""

import time
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from cinejournal.api.routes import (
    coming_soon_router,
    health_router,
    journal_entries_router,
    trending_router,
    user_ratings_router,
)
from cinejournal.config import settings
from cinejournal.db.models import dispose_engine, init_engine
from cinejournal.observability.logging import get_logger, setup_logging
from cinejournal.observability.metrics import SYSTEM_INFO, get_metrics_manager
from cinejournal.retention.scheduler import RetentionScheduler
from cinejournal.services.tmdb import TMDBError, close_tmdb_client

API_PREFIX = "/api/v1"

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup initializes logging, the database engine and the retention
    scheduler. Shutdown stops the scheduler and releases connections.
    """
    setup_logging(
        json_format=settings.observability.log_format == "json",
        log_level=settings.observability.log_level,
    )

    SYSTEM_INFO.info({
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.env,
    })

    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.env,
    )

    try:
        init_engine(
            str(settings.database.url),
            echo=settings.database.echo,
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
        )
        logger.info("database_engine_initialized")

        app.state.retention_scheduler = None
        if settings.retention.scheduler_enabled:
            scheduler = RetentionScheduler(settings.retention)
            scheduler.start()
            app.state.retention_scheduler = scheduler

        logger.info("application_startup_complete")

    except Exception as e:
        logger.error("startup_failed", error=str(e), exc_info=True)
        raise

    yield

    logger.info("shutting_down_application")

    try:
        if app.state.retention_scheduler is not None:
            app.state.retention_scheduler.shutdown()

        await close_tmdb_client()
        await dispose_engine()
        logger.info("application_shutdown_complete")

    except Exception as e:
        logger.error("shutdown_error", error=str(e), exc_info=True)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Trending, upcoming and journaled movies and TV shows",
        docs_url="/docs" if settings.env != "production" else None,
        redoc_url="/redoc" if settings.env != "production" else None,
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    _add_middleware(app)
    _add_exception_handlers(app)
    _add_routes(app)

    app.include_router(health_router)
    app.include_router(trending_router, prefix=API_PREFIX)
    app.include_router(coming_soon_router, prefix=API_PREFIX)
    app.include_router(journal_entries_router, prefix=API_PREFIX)
    app.include_router(user_ratings_router, prefix=API_PREFIX)

    return app


def _add_middleware(app: FastAPI) -> None:
    """Add middleware to the application.

    Args:
        app: FastAPI application
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=settings.security.cors_allow_credentials,
        allow_methods=settings.security.cors_allow_methods,
        allow_headers=settings.security.cors_allow_headers,
    )

    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.middleware("http")
    async def add_request_metadata(
        request: Request,
        call_next: "Callable[[Request], Awaitable[Response]]",
    ) -> Response:
        """Bind a request ID to the log context, record metrics and timing."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start_time = time.time()
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        metrics = get_metrics_manager()
        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            metrics.record_api_request(request.method, request.url.path, 500, duration)
            logger.error(
                "request_failed",
                error=str(e),
                duration_ms=round(duration * 1000, 2),
                exc_info=True,
            )
            raise

        duration = time.time() - start_time
        metrics.record_api_request(request.method, request.url.path, response.status_code, duration)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-API-Version"] = "v1"

        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )
        return response


def _add_exception_handlers(app: FastAPI) -> None:
    """Map validation and upstream failures to error responses."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")

        logger.info("request_validation_failed", errors=len(errors), field=location)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": f"{location}: {message}" if location else message,
                "errors": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                    for err in errors
                ],
            },
        )

    @app.exception_handler(TMDBError)
    async def tmdb_error_handler(request: Request, exc: TMDBError) -> JSONResponse:
        logger.warning("tmdb_error_unhandled", error=str(exc), status_code=exc.status_code)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": str(exc)},
        )


def _add_routes(app: FastAPI) -> None:
    """Add system routes to the application."""

    @app.get("/", tags=["System"])
    async def root() -> dict:
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs" if settings.env != "production" else None,
        }

    @app.get("/metrics", tags=["System"])
    async def get_metrics() -> PlainTextResponse:
        """Prometheus metrics endpoint."""
        metrics = get_metrics_manager()
        if not settings.observability.prometheus_enabled:
            return PlainTextResponse("", status_code=status.HTTP_404_NOT_FOUND)
        return PlainTextResponse(
            content=metrics.get_metrics().decode("utf-8"),
            media_type=metrics.content_type,
        )


def cli() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "cinejournal.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=settings.workers if not settings.debug else 1,
    )


# Create the application instance
app = create_app()

if __name__ == "__main__":
    cli()
