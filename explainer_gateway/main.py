"""
Explainer Gateway FastAPI Application

Web server that turns text selections into short AI explanations while
keeping provider keys, cost and abuse under control.
Uses modular router architecture.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from loguru import logger

from .shared.clients import BaseStore
from .shared.core.config import ExplainerSettings, Settings
from .shared.core.connection_manager import ConnectionManager
from .shared.core.dependencies import get_settings
from .shared.core.initializer import Initializer
from .shared.core.logging_config import configure_logging
from .shared.middleware import add_monitoring_middleware
from .shared.models.internal import ExplainStatus
from .shared.models.responses import ExplainResponse
from .shared.services.gateway import INVALID_REQUEST_MESSAGE
from .shared.api import providers, health
from .web_api import router as web_router


def create_app(
    settings: Optional[Settings] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
    store: Optional[BaseStore] = None,
    explainer_settings: Optional[ExplainerSettings] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Application settings (read from the environment when omitted)
        http_transport: Transport override for outbound provider calls
        store: Pre-built state store instead of the configured backend
        explainer_settings: Pre-validated explanation settings instead of the YAML file
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Initialize resources at startup, cleanup at shutdown.

        Key principles:
        - Expensive resources (connection pools) created once at startup
        - Stored in app.state for access by dependencies
        - Proper cleanup on shutdown
        """
        # Startup
        configure_logging(settings)
        logger.info(f"Starting {settings.app_name}...")

        settings.check_production_secrets()

        app.state.settings = settings

        # Initialize connection manager with all shared resources
        conn_manager = ConnectionManager(settings, http_transport=http_transport, store=store)
        await conn_manager.initialize()
        app.state.connection_manager = conn_manager

        # Load explanation settings and wire the gateway
        initializer = Initializer(settings, conn_manager, explainer_settings=explainer_settings)
        try:
            await initializer.initialize()
        except Exception:
            await conn_manager.close()
            raise
        app.state.initializer = initializer

        logger.info(f"{settings.app_name} started successfully")
        logger.info(f"State store: {settings.store_backend}, HTTP/2: {settings.enable_http2}")

        yield

        # Shutdown
        logger.info(f"Shutting down {settings.app_name}...")

        # Close connection manager (handles all connection pools)
        if hasattr(app.state, 'connection_manager'):
            await app.state.connection_manager.close()
            logger.info("Connection manager closed")

        logger.info(f"{settings.app_name} shut down gracefully")

    app = FastAPI(
        title=settings.app_name,
        description="Secure gateway for AI explanations of selected text",
        version=settings.version,
        lifespan=lifespan,
        docs_url=None if settings.is_production() else "/docs",
        redoc_url=None if settings.is_production() else "/redoc",
        openapi_url=None if settings.is_production() else "/openapi.json",
    )
    app.state.settings = settings

    # Add monitoring middleware
    add_monitoring_middleware(app, expose_metrics=settings.enable_metrics)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],  # For request tracking
        max_age=settings.cors_max_age,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies are invalid requests; 422 stays reserved for rejected selections."""
        logger.warning(f"Request validation failed on {request.url.path}: {len(exc.errors())} error(s)")
        response = ExplainResponse(
            success=False,
            status=ExplainStatus.INVALID_REQUEST,
            error_message=INVALID_REQUEST_MESSAGE,
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=response.model_dump(mode="json", exclude_none=True)
        )

    # Explain widget and administration
    app.include_router(web_router.router, prefix=settings.api_prefix)

    # Shared utilities
    app.include_router(providers.router, prefix=settings.api_prefix, tags=["providers"])
    app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])

    @app.get("/")
    async def root():
        """Root endpoint with service information."""
        prefix = settings.api_prefix
        return {
            "service": settings.app_name,
            "version": settings.version,
            "status": "operational",
            "endpoints": {
                "explain": f"{prefix}/explain",
                "providers": f"{prefix}/providers",
                "health": f"{prefix}/health",
                "admin": {
                    "base": f"{prefix}/admin/*",
                    "description": "Circuit, cache and credential management (X-Admin-Token required)",
                },
            },
        }

    return app


app = create_app()


def main():
    """
    Main entry point for running the web server.
    For production, use gunicorn with uvicorn workers for better performance.
    """
    settings = get_settings()

    logger.info(f"Starting {settings.app_name} on {settings.host}:{settings.port}")
    logger.info(f"Environment: {settings.environment}")

    # For production, run with:
    # gunicorn explainer_gateway.main:app -w 4 -k uvicorn.workers.UvicornWorker --bind 0.0.0.0:8000
    uvicorn.run(
        "explainer_gateway.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
        loop="asyncio",
    )


if __name__ == "__main__":
    main()
