"""
FastAPI Application Entry Point.

This module creates and configures the FastAPI application instance for the
transvox gateway. It wires settings, the ephemeral cache, the external
collaborators and GatewayService together and registers the routes.

The application exposes:
    - Gateway API: POST /v1/gateway (and POST /)
    - Operations: /health, /metrics

Usage:
    # Run with uvicorn
    uvicorn transvox.main:app --host 0.0.0.0 --port 8000

    # Or use the module directly
    python -m uvicorn transvox.main:app --reload
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from transvox import __version__
from transvox.api.dependencies import get_settings
from transvox.api.routes import router
from transvox.collaborators import build_in_memory_collaborators
from transvox.core.config import Settings
from transvox.core.logging import configure_logging, get_logger, info
from transvox.services.gateway import GatewayService
from transvox.translation.cache import EphemeralCache


def create_app(settings: Optional[Settings] = None, service: Optional[GatewayService] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function:
        1. Configures structured logging based on environment settings
        2. Builds GatewayService (unless one is injected) with a fresh
           ephemeral cache and in-memory collaborators seeded from settings
        3. Registers CORS middleware and the gateway router

    Args:
        settings: Settings to use; loaded via get_settings() when None.
        service: Pre-built service, mainly for tests.

    Returns:
        FastAPI: Configured application instance ready to serve requests.
    """
    # Initialize structured logging (reads TRANSVOX_LOG_LEVEL env var)
    configure_logging()
    log = get_logger("transvox.main")

    settings = settings or get_settings()
    if service is None:
        config = settings.get_gateway_config()
        service = GatewayService(
            config,
            build_in_memory_collaborators(settings.auth_tokens, settings.user_api_keys),
            EphemeralCache(config.cache.ttl_seconds, config.cache.max_items),
        )

    app = FastAPI(title="transvox", version=__version__)
    app.state.settings = settings
    app.state.gateway = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.include_router(router)

    info(log, "app_created", environment=service.config.environment)
    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
