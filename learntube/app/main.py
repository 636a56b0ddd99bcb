from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from learntube.app.api.youtube import router as youtube_router
from learntube.app.core.config import settings
from learntube.app.core.http_client import init_http_client
from learntube.app.core.logging import get_logger, setup_logging
from learntube.app.exceptions import InvalidArgumentError
from learntube.app.middleware.request_id import RequestIdMiddleware
from learntube.app.services.video_directory import VideoDirectoryClient


def create_app(directory: Optional[VideoDirectoryClient] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        directory: Prebuilt directory client. When omitted, one is built from
            settings during lifespan startup around the shared HTTP client.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[dict, None]:
        """Application lifespan context manager.

        Creates the shared HTTP connection pool and the process-wide directory
        client on startup and closes the pool on shutdown.
        """
        async with init_http_client() as http_client:
            if getattr(app.state, "directory", None) is None:
                app.state.directory = VideoDirectoryClient.from_settings(settings, http_client)

            client: VideoDirectoryClient = app.state.directory
            logger.info(
                "Application startup complete",
                extra={
                    "api_keys": client.key_pool.count(),
                    "quota_limit": client.get_quota_info().limit,
                    "debug_mode": settings.debug,
                },
            )
            if not client.key_pool.count():
                logger.warning("No YouTube API keys configured; every result will be sample data")

            yield {"http_client": http_client}

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="LearnTube",
        description="Quota-aware YouTube Data API access layer for educational video browsing",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.directory = directory

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )

    # Request ID middleware (innermost - closest to route)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(youtube_router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Health check with key count, quota and cache size."""
        client: Optional[VideoDirectoryClient] = getattr(request.app.state, "directory", None)
        if client is None:
            return {"status": "starting", "components": {}}

        diagnostics = client.diagnostics()
        status = "ok" if diagnostics["api_keys"] else "degraded"
        return {"status": status, "components": diagnostics}

    @app.exception_handler(InvalidArgumentError)
    async def invalid_argument_handler(request: Request, exc: InvalidArgumentError) -> JSONResponse:
        """Handle InvalidArgumentError and return HTTP 400 response."""
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_argument", "message": exc.message, "argument": exc.argument},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        Never returns a traceback to the client; full details are logged
        server-side. Debug mode adds the exception message and type.
        """
        request_id = getattr(request.state, "request_id", "unknown")

        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
            },
        )

        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_error",
                    "message": str(exc),
                    "exception_type": type(exc).__name__,
                    "request_id": request_id,
                },
            )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "Internal server error",
                "request_id": request_id,
            },
        )

    return app


# Create the application instance
app = create_app()
