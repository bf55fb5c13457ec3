"""ReqRelay API service.

FastAPI application providing:
- Authenticated CRUD over named requests (/requests)
- Event publishing to the RabbitMQ fan-out topology after every mutation
- Dependency health reporting (/health)

This module provides the app factory pattern for creating configured
FastAPI instances suitable for testing and production deployment.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI

from reqrelay.api.lifespan import lifespan
from reqrelay.api.middleware import (
    ErrorHandlerMiddleware,
    RequestIDMiddleware,
    register_exception_handlers,
)
from reqrelay.api.routers import health_router, requests_router

if TYPE_CHECKING:
    from reqrelay.core.config import Settings

logger = logging.getLogger(__name__)

API_TITLE = "ReqRelay API"
API_DESCRIPTION = """
Request registry that announces every change on RabbitMQ.

All /requests endpoints require the `X-API-KEY` header and answer with
`{"success": ..., "message": ..., "data": ...}`.
"""


def create_app(settings: Settings | None = None, *, lifespan_enabled: bool = True) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        settings: Optional Settings instance. If not provided, settings are
            loaded from the environment when the app starts.
        lifespan_enabled: Connect to the database and broker on startup.
            Tests that inject their own state pass False.

    Returns:
        Configured FastAPI application.

    Example:
        app = create_app()

        # For testing
        app = create_app(test_settings, lifespan_enabled=False)
        app.state.publisher = fake_publisher
    """
    version = settings.app_version if settings else "0.1.0"

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=version,
        lifespan=lifespan if lifespan_enabled else None,
    )

    # Store settings in app state for access in routes
    app.state.settings = settings
    app.state.publisher = None

    _add_middleware(app)
    register_exception_handlers(app)
    _include_routers(app)

    logger.info("ReqRelay API application created (version=%s)", version)
    return app


def _add_middleware(app: FastAPI) -> None:
    # Last added is outermost: request IDs are attached to 500 envelopes too
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIDMiddleware)


def _include_routers(app: FastAPI) -> None:
    app.include_router(requests_router)
    app.include_router(health_router)


__all__ = ["create_app"]
