"""Tests for Prometheus metrics."""
from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST

from transvox.core.metrics import GatewayMetrics, metrics


class TestGatewayMetrics:
    """Each instance owns its registry."""

    def test_exposition(self):
        m = GatewayMetrics()
        m.record_translation("google", "live", "success", duration=0.4)
        m.record_translation("none", "live", "error")
        m.record_fallback("timeout")
        m.record_cache("hit", tier="public")
        m.record_cache("miss")
        m.record_correction("exact")
        m.record_speech("openai", "success", audio_bytes=1024)

        content, content_type = m.get_metrics_response()
        text = content.decode("utf-8")
        assert content_type == CONTENT_TYPE_LATEST
        assert 'transvox_translations_total{provider="google",source="live",status="success"} 1.0' in text
        assert 'transvox_fallbacks_total{reason="timeout"} 1.0' in text
        assert 'transvox_cache_hits_total{tier="public"} 1.0' in text
        assert "transvox_cache_misses_total 1.0" in text
        assert 'transvox_corrections_applied_total{kind="exact"} 1.0' in text
        assert "transvox_speech_bytes_total 1024.0" in text
        assert "transvox_translation_duration_seconds_bucket" in text

    def test_instances_are_independent(self):
        a, b = GatewayMetrics(), GatewayMetrics()
        a.record_fallback("error")
        assert b.registry.get_sample_value("transvox_fallbacks_total", {"reason": "error"}) is None
        assert a.registry.get_sample_value("transvox_fallbacks_total", {"reason": "error"}) == 1.0

    def test_global_instance(self):
        before = metrics.registry.get_sample_value("transvox_speech_total",
                                                   {"provider": "google", "status": "error"}) or 0.0
        metrics.record_speech("google", "error")
        after = metrics.registry.get_sample_value("transvox_speech_total",
                                                  {"provider": "google", "status": "error"})
        assert after == before + 1
