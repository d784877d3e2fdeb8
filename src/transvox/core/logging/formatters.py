"""
Log Formatters for JSON and Console Output.

    JsonlFormatter: one JSON object per line, for files and log shippers.
    ColoredConsoleFormatter: human-readable, colored terminal lines.

Output Examples:
    JSONL:
        {"ts":"2025-03-02T10:15:04+09:00","level":2,"tag":"INFO","message":"fallback","request_id":"a1b2c3","extra":{"reason":"timeout"}}

    Console:
        10:15:04 [ WARN  ] (a1b2c3) fallback reason=timeout model=gpt-4o-mini 5.002s
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

from .colors import Colors, get_tag_color


def _colorize(text: str, color: str) -> str:
    # Read the flag from the package so tests can toggle it at runtime
    import transvox.core.logging as log_module
    if not getattr(log_module, "_USE_COLORS", False):
        return text
    return f"{color}{text}{Colors.RESET}"


class JsonlFormatter(logging.Formatter):
    """
    Format log records as JSON Lines.

    Keys: ts, level (1-4), tag, message, request_id, and when present
    event, seconds and extra.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    Format log records with ANSI colors for console output.

    Format:
        HH:MM:SS [ TAG   ] (rid) message key=value 0.123s
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        rid = getattr(record, "request_id", "-")

        parts = [
            _colorize(ts, Colors.DIM),
            _colorize(f"[{tag:^7}]", get_tag_color(tag)),
        ]
        if rid != "-":
            parts.append(_colorize(f"({rid})", Colors.DIM + Colors.CYAN))
        parts.append(record.getMessage())

        event = getattr(record, "event", None)
        if event:
            parts.append(_colorize(f"event={event}", Colors.BLUE))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            parts.append(_colorize(f"{seconds:.3f}s", self._timing_color(seconds)))

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            for k, v in extra_data.items():
                parts.append(_colorize(f"{k}={v}", self._field_color(k, v)))

        return " ".join(parts)

    @staticmethod
    def _timing_color(seconds: float) -> str:
        # Provider calls routinely take a second or two
        if seconds < 0.5:
            return Colors.GREEN
        if seconds < 3.0:
            return Colors.YELLOW
        return Colors.RED

    @staticmethod
    def _field_color(key: str, value: Any) -> str:
        """
        Highlight the fields that explain routing decisions.

            - source: green for cache/correction hits, cyan for live calls
            - reason: yellow (only logged on fallbacks)
            - provider/model: magenta
        """
        if key == "source":
            return Colors.CYAN if value == "live" else Colors.GREEN
        if key == "reason":
            return Colors.YELLOW
        if key in ("provider", "model"):
            return Colors.MAGENTA
        return Colors.DIM
