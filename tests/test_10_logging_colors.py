"""Tests for console color handling."""
from __future__ import annotations

import logging

import transvox.core.logging as log_module
from transvox.core.logging import ColoredConsoleFormatter, Colors, supports_color


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, msg, None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class TestSupportsColor:
    def test_disabled_by_env(self, monkeypatch):
        monkeypatch.setenv("TRANSVOX_NO_COLOR", "1")
        assert supports_color() is False

    def test_disabled_by_no_color(self, monkeypatch):
        monkeypatch.setenv("TRANSVOX_NO_COLOR", "0")
        monkeypatch.setenv("NO_COLOR", "1")
        assert supports_color() is False


class TestColoredFormatter:
    def test_plain_when_disabled(self, monkeypatch):
        monkeypatch.setattr(log_module, "_USE_COLORS", False)
        line = ColoredConsoleFormatter().format(_record("fallback", tag="WARN", request_id="-",
                                                        extra_data={"reason": "timeout"}))
        assert "\033[" not in line
        assert "reason=timeout" in line

    def test_colors_when_enabled(self, monkeypatch):
        monkeypatch.setattr(log_module, "_USE_COLORS", True)
        line = ColoredConsoleFormatter().format(_record("fallback", tag="WARN", request_id="-",
                                                        extra_data={"reason": "timeout"}))
        assert Colors.YELLOW + "reason=timeout" + Colors.RESET in line

    def test_timing_colors(self):
        assert ColoredConsoleFormatter._timing_color(0.1) == Colors.GREEN
        assert ColoredConsoleFormatter._timing_color(1.0) == Colors.YELLOW
        assert ColoredConsoleFormatter._timing_color(5.0) == Colors.RED

    def test_source_field_color(self):
        assert ColoredConsoleFormatter._field_color("source", "live") == Colors.CYAN
        assert ColoredConsoleFormatter._field_color("source", "cache") == Colors.GREEN
