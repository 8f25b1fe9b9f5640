"""
FastAPI application factory for the Wharf Azure DevOps provider.

Uses lifespan handler for startup/shutdown logging. The service keeps no
state between requests, so there is nothing to initialize or close.
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from wharf_azuredevops.api.problems import register_problem_handlers
from wharf_azuredevops.config import settings
from wharf_azuredevops.logging_config import configure_logging, get_logger
from wharf_azuredevops.version import load_version

from .health import router as health_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler for startup and shutdown."""
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)
    logger.info(
        "Starting Wharf Azure DevOps provider",
        version=load_version().version,
        wharf_api_url=settings.api_url,
        cors=settings.cors.enabled,
    )

    yield

    logger.info("Shutting down Wharf Azure DevOps provider")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Wharf provider API for Azure DevOps",
        description="Wharf backend API for integrating Azure DevOps repositories "
        "with the Wharf main API.",
        version=load_version().version,
        lifespan=lifespan,
        docs_url="/import/azuredevops/docs",
        redoc_url="/import/azuredevops/redoc",
        openapi_url="/import/azuredevops/openapi.json",
        license_info={
            "name": "MIT",
            "url": "https://github.com/iver-wharf/wharf-provider-azuredevops/blob/master/LICENSE",
        },
    )

    # CORS middleware
    if settings.cors.enabled:
        logger.info("Allowing CORS", origins=settings.cors.origins)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors.origins,
            allow_credentials=not settings.cors.allow_all,
            allow_methods=settings.cors.allow_methods,
            allow_headers=settings.cors.allow_headers,
        )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):  # type: ignore[no-untyped-def]
        """Ensure every request has a request ID for logging correlation."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        return response

    register_problem_handlers(app)

    # Health endpoints (no prefix)
    app.include_router(health_router)

    # Version info
    from wharf_azuredevops.api.routers.version import router as version_router

    app.include_router(version_router)

    # Import from Azure DevOps
    from wharf_azuredevops.api.routers.imports import router as imports_router

    app.include_router(imports_router)

    # Pull request service hooks
    from wharf_azuredevops.api.routers.triggers import router as triggers_router

    app.include_router(triggers_router)

    return app


# Application instance
app = create_application()
