"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import get_settings
from shared.logging_config import configure_logging
from .dependencies import ServiceContainer
from .errors import register_exception_handlers
from .middleware.request_id import RequestIdMiddleware, REQUEST_ID_HEADER
from .routes import health, cron
from modules.credits.routes import router as credits_router
from modules.generation.routes import router as generation_router
from modules.webhooks.routes import router as webhooks_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Builds the service container on startup and closes its clients on
    shutdown. Tests may install their own container on app.state first.
    """
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    owns_container = getattr(app.state, "container", None) is None
    if owns_container:
        app.state.container = ServiceContainer(settings)
    logger.info(f"Starting {settings.app_name} on {settings.host}:{settings.port}")
    yield
    # Shutdown
    if owns_container:
        await app.state.container.aclose()
    logger.info(f"Shutting down {settings.app_name}")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Credit, billing and generation fulfillment API for WearOn merchants",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    # Register routes
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(generation_router, prefix="/api/v1/generation", tags=["generation"])
    app.include_router(credits_router, prefix="/api/v1/credits", tags=["credits"])
    app.include_router(webhooks_router, prefix="/api/v1/webhooks", tags=["webhooks"])
    app.include_router(cron.router, prefix="/api/v1/cron", tags=["cron"])

    return app


# Application instance for uvicorn
app = create_app()
