"""
Prometheus Metrics for the Gateway.

Metrics Exposed:
    transvox_translations_total           - Translations by provider, source and status
    transvox_translation_duration_seconds - Histogram of translate() latency
    transvox_fallbacks_total              - Fast-provider fallbacks by reason
    transvox_cache_hits_total             - Cache hits by tier (memory/public)
    transvox_cache_misses_total           - Cache misses
    transvox_corrections_applied_total    - Correction overrides by match kind
    transvox_speech_total                 - Speech syntheses by provider and status
    transvox_speech_bytes_total           - Audio bytes returned

Usage:
    from transvox.core.metrics import metrics

    metrics.record_translation("openai", "live", "success", duration=0.8)
    metrics.record_fallback("timeout")
    content, content_type = metrics.get_metrics_response()

Prometheus Scrape Config Example:
    scrape_configs:
      - job_name: 'transvox'
        static_configs:
          - targets: ['localhost:8000']
        metrics_path: '/metrics'
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


class GatewayMetrics:
    """
    Metric collection for the gateway.

    Uses a private CollectorRegistry so that several instances (one per
    test, for example) never collide on metric names.
    """

    def __init__(self):
        self._registry = CollectorRegistry()

        self._translations_total = Counter(
            "transvox_translations_total",
            "Total translation requests",
            ["provider", "source", "status"],
            registry=self._registry,
        )
        self._translation_duration = Histogram(
            "transvox_translation_duration_seconds",
            "Translation duration in seconds",
            ["source"],
            buckets=(0.01, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self._registry,
        )
        self._fallbacks_total = Counter(
            "transvox_fallbacks_total",
            "Fast-provider fallbacks to the deep provider",
            ["reason"],
            registry=self._registry,
        )
        self._cache_hits = Counter(
            "transvox_cache_hits_total",
            "Total cache hits",
            ["tier"],
            registry=self._registry,
        )
        self._cache_misses = Counter(
            "transvox_cache_misses_total",
            "Total cache misses",
            registry=self._registry,
        )
        self._corrections_applied = Counter(
            "transvox_corrections_applied_total",
            "Correction overrides applied",
            ["kind"],
            registry=self._registry,
        )
        self._speech_total = Counter(
            "transvox_speech_total",
            "Total speech synthesis requests",
            ["provider", "status"],
            registry=self._registry,
        )
        self._speech_bytes_total = Counter(
            "transvox_speech_bytes_total",
            "Total audio bytes generated",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_translation(self, provider: str, source: str, status: str, duration: float = 0.0) -> None:
        """
        Record a finished translation.

        Args:
            provider: Provider that served it ("openai", "google", "user-feedback", ...)
            source: "live", "cache", "public-cache" or "correction"
            status: "success" or "error"
            duration: Seconds spent in the orchestrator
        """
        self._translations_total.labels(provider=provider, source=source, status=status).inc()
        if status == "success":
            self._translation_duration.labels(source=source).observe(duration)

    def record_fallback(self, reason: str) -> None:
        self._fallbacks_total.labels(reason=reason).inc()

    def record_cache(self, result: str, tier: str = "memory") -> None:
        """
        Record a cache hit or miss.

        Args:
            result: "hit" or "miss"
            tier: "memory" or "public"
        """
        if result == "hit":
            self._cache_hits.labels(tier=tier).inc()
        else:
            self._cache_misses.inc()

    def record_correction(self, kind: str) -> None:
        self._corrections_applied.labels(kind=kind).inc()

    def record_speech(self, provider: str, status: str, audio_bytes: int = 0) -> None:
        self._speech_total.labels(provider=provider, status=status).inc()
        if audio_bytes > 0:
            self._speech_bytes_total.inc(audio_bytes)

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Get metrics in Prometheus format.

        Returns:
            Tuple of (content_bytes, content_type)
        """
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Process-wide instance used by the service and the /metrics route
metrics = GatewayMetrics()
