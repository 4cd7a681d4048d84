"""
FastAPI application main entry point.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ghostwriter.api.routes import chats_router, onboarding_router
from ghostwriter.core.config import get_settings
from ghostwriter.core.container import ServiceContainer
from ghostwriter.core.logging import configure_logging
from ghostwriter.core.observability import init_sentry

logger = structlog.get_logger(__name__)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application.

    Args:
        container: Pre-built service container; built from settings when omitted
    """
    settings = container.settings if container is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Handles startup and shutdown events.
        """
        # Startup
        configure_logging(settings)
        logger.info("Starting Ghostwriter Backend", environment=settings.environment)

        # Initialize Sentry for error tracking
        try:
            init_sentry(settings)
        except Exception as e:
            logger.warning("Sentry initialization failed", error=str(e))

        if getattr(app.state, "container", None) is None:
            app.state.container = ServiceContainer.build(settings)
        await app.state.container.startup()

        yield

        # Shutdown
        logger.info("Shutting down Ghostwriter Backend")
        await app.state.container.shutdown()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
    Ghostwriter Backend

    Learns a user's LinkedIn voice from their profile and posts, then writes,
    analyzes and plans content grounded only in verified facts.
    """,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        lifespan=lifespan,
    )
    app.state.container = container

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routes
    app.include_router(onboarding_router, prefix=settings.api_v1_prefix)
    app.include_router(chats_router, prefix=settings.api_v1_prefix)

    # Health check endpoint
    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
        }

    # Root endpoint
    @app.get("/")
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "endpoints": {
                "onboarding": f"{settings.api_v1_prefix}/onboarding",
                "chats": f"{settings.api_v1_prefix}/chats",
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ghostwriter.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug,
    )
