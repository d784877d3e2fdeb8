"""
Request Context and Configuration State for Logging.

The request ID lives in a ContextVar so that concurrent asyncio requests
each see their own value. Level and handler configuration are process-wide.

Environment Variables:
    - TRANSVOX_SETTINGS: Settings file to read the logging section from
    - TRANSVOX_LOG_LEVEL: Override log level (1-4 or name)
    - TRANSVOX_LOG_DIR: Directory for the JSONL log file
    - TRANSVOX_JSONL_FILE: JSONL filename
    - TRANSVOX_LOG_ROTATE_BYTES: Max log file size before rotation
    - TRANSVOX_LOG_ROTATE_BACKUP: Number of rotated files to keep
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

import yaml

from .levels import LEVEL_NAMES, LogLevel

# "-" marks log lines emitted outside a request
_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """
    Set request ID in context for log correlation.

    Call this at the start of each request; every log line emitted from the
    same async context afterwards carries the ID.
    """
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _env_int(name: str) -> int | None:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def read_logging_config() -> Dict[str, Any]:
    """
    Read logging configuration from the settings file and environment.

    Priority (highest first): environment variables, the ``logging``
    section of settings.yaml, built-in defaults. A missing or unreadable
    settings file leaves the defaults in place.
    """
    cfg: Dict[str, Any] = {}

    settings_path = os.getenv("TRANSVOX_SETTINGS", "config/settings.yaml")
    try:
        from transvox.core.config import load_settings
        settings = load_settings(settings_path)
        cfg.update(settings.raw.get("logging", {}) or {})
    except (OSError, yaml.YAMLError):
        pass

    if os.getenv("TRANSVOX_LOG_LEVEL"):
        cfg["level"] = os.environ["TRANSVOX_LOG_LEVEL"]
    if os.getenv("TRANSVOX_LOG_DIR"):
        cfg["log_dir"] = os.environ["TRANSVOX_LOG_DIR"]
    if os.getenv("TRANSVOX_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["TRANSVOX_JSONL_FILE"]

    rotate_bytes = _env_int("TRANSVOX_LOG_ROTATE_BYTES")
    if rotate_bytes is not None:
        cfg["rotate_max_bytes"] = rotate_bytes
    rotate_backup = _env_int("TRANSVOX_LOG_ROTATE_BACKUP")
    if rotate_backup is not None:
        cfg["rotate_backup_count"] = rotate_backup

    return cfg
