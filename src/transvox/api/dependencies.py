"""
FastAPI Dependency Injection Providers.

Architecture:
    1. get_settings() - Loads and caches application configuration
    2. get_gateway() - Returns the GatewayService stored on app.state

The service (and the ephemeral cache it owns) is built once by
create_app() in main.py and attached to ``app.state.gateway``; route
handlers receive it through Depends(get_gateway). Nothing here is a
module-level singleton apart from the cached Settings.

Usage in Route Handlers:
    from fastapi import Depends
    from transvox.api.dependencies import get_gateway

    @router.post("/v1/gateway")
    async def gateway(request: Request, service: GatewayService = Depends(get_gateway)):
        ...
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from fastapi import Request

from transvox.core.config import Settings, apply_env_overrides, load_settings
from transvox.core.logging import get_logger, warn
from transvox.services.gateway import GatewayService

_LOG = get_logger("transvox.api")


def settings_path() -> str:
    return os.getenv("TRANSVOX_SETTINGS", "config/settings.yaml")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    The path comes from TRANSVOX_SETTINGS (default config/settings.yaml).
    If the file doesn't exist, default values plus environment overrides
    are used.
    """
    path = settings_path()
    try:
        return load_settings(path)
    except FileNotFoundError:
        warn(_LOG, "settings_missing", path=path)
        return Settings(raw=apply_env_overrides({}))


def get_gateway(request: Request) -> GatewayService:
    """The GatewayService built by create_app()."""
    return request.app.state.gateway


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header, else None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
