"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.
It sets up all routes, middleware, and exception handlers.

Design Decisions:
- Use lifespan events for startup/shutdown
- Build the GitHub App config once at startup and fail fast when it is missing
- Map the service error taxonomy onto HTTP status codes in one place
- Expose health check endpoints
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.api import router as api_router
from app.config import ConfigurationError, Settings, get_settings
from app.logging_config import get_logger, setup_logging
from app.services.errors import (
    AccessDeniedError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    ServiceError,
    UpstreamError,
)
from app.services.github_client import GitHubClient, create_github_client
from app.storage import DocumentStore, create_store

# Initialize logging first
setup_logging()

logger = get_logger(__name__)


def status_for(exc: ServiceError) -> int:
    """HTTP status for a service-layer failure."""
    if isinstance(exc, InvalidInputError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, AccessDeniedError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, UpstreamError):
        return status.HTTP_504_GATEWAY_TIMEOUT if exc.timed_out else status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events for the application.
    """
    settings: Settings = app.state.settings

    # Startup
    logger.info(
        "Starting CodeCraft backend",
        host=settings.host,
        port=settings.port,
        storage="sqlite" if settings.database_path else "memory"
    )

    # Validate configuration on startup
    if app.state.github is None:
        try:
            app.state.github = create_github_client(settings.github_app_config())
        except ConfigurationError as e:
            logger.error(
                "Configuration validation failed",
                error=str(e)
            )
            raise
    logger.info("Configuration validated successfully")

    yield

    # Shutdown
    app.state.store.close()
    logger.info("Shutting down CodeCraft backend")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    github: Optional[GitHubClient] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        store: Storage backend (defaults to the one selected by settings)
        github: Prebuilt GitHub client (defaults to one built at startup)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="CodeCraft Backend",
        description="Data layer for the CodeCraft code-review dashboard",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json"
    )

    app.state.settings = settings
    app.state.store = store or create_store(settings)
    app.state.github = github

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    app.include_router(api_router)

    @app.exception_handler(ServiceError)
    async def service_exception_handler(
        request: Request,
        exc: ServiceError
    ) -> JSONResponse:
        """Translate service failures into HTTP responses."""
        status_code = status_for(exc)
        log = logger.error if status_code >= 500 else logger.info
        log(
            "Request failed",
            path=request.url.path,
            method=request.method,
            status_code=status_code,
            error=str(exc),
            error_type=type(exc).__name__
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "type": type(exc).__name__}
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_exception_handler(
        request: Request,
        exc: ConfigurationError
    ) -> JSONResponse:
        logger.error("Configuration error", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc), "type": type(exc).__name__}
        )

    # Add global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "type": type(exc).__name__
            }
        )

    # Add root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with basic info."""
        return {
            "name": "CodeCraft Backend",
            "version": __version__,
            "status": "running",
            "docs": "/docs"
        }

    # Add health check endpoint
    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.

        Returns basic health status for load balancers and monitors.
        """
        return {
            "status": "healthy",
            "service": "codecraft-backend",
            "version": __version__
        }

    # Add readiness check endpoint
    @app.get("/ready")
    async def readiness_check():
        """
        Readiness check endpoint.

        Startup refuses to finish without GitHub App credentials, so a
        served request means the app is ready.
        """
        return {
            "status": "ready",
            "service": "codecraft-backend"
        }

    return app


# Create the application instance
app = create_app()


def run() -> None:
    """Serve the application with uvicorn (the codecraft-backend command)."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=settings.log_requests,
    )
