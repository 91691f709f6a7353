"""
App factory for QueryJam.

Creates a pre-configured FastAPI application with:
- CORS middleware
- Health check endpoint
- Lifespan that builds and tears down the service container
- JSON error responses
- Logging filter to suppress noisy healthcheck logs
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..api.ai_endpoints import router as ai_router
from ..api.errors import install_error_handlers
from ..api.router import router as query_router
from ..api.session_endpoints import router as session_router
from ..settings import Settings, load_settings
from ..websocket.router import router as websocket_router
from .container import Services, build_services

logger = logging.getLogger(__name__)


ServicesFactory = Callable[[Settings], Awaitable[Services]]


class HealthcheckLogFilter(logging.Filter):
    """Filter out noisy healthcheck logs."""

    FILTERED_PATHS = ("/health",)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        for path in self.FILTERED_PATHS:
            if f'"{path}' in message or f" {path} " in message:
                return False
        return True


def configure_logging(level: str = "INFO"):
    """Configure root logging once and quiet the uvicorn access log."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn_access = logging.getLogger("uvicorn.access")
    if not any(isinstance(f, HealthcheckLogFilter) for f in uvicorn_access.filters):
        uvicorn_access.addFilter(HealthcheckLogFilter())


def create_app(
    settings: Optional[Settings] = None,
    *,
    services_factory: Optional[ServicesFactory] = None,
) -> FastAPI:
    """
    Create the QueryJam FastAPI app.

    Args:
        settings: Application settings (loaded from the environment if omitted)
        services_factory: Async callable building the service container;
            defaults to build_services

    Returns:
        Configured FastAPI application
    """
    settings = settings or load_settings()
    factory = services_factory or build_services

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        configure_logging(settings.LOG_LEVEL)
        services = await factory(settings)
        app.state.services = services
        logger.info(f"{settings.SERVICE_NAME} started")

        yield

        # Shutdown
        await services.close()
        app.state.services = None

    app = FastAPI(
        title="QueryJam",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)

    app.include_router(query_router)
    app.include_router(session_router)
    app.include_router(ai_router)
    app.include_router(websocket_router)

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": settings.SERVICE_NAME}

    return app
