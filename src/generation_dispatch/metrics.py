"""Metrics collection primitives for generation operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server


@dataclass
class GenerationEvent:
    """Terminal state of one logical generation operation."""

    operation: str
    provider: Optional[str]
    model_class: Optional[str]
    status: str
    attempts: int
    duration_ms: float
    error_code: Optional[str] = None


class MetricsCollector(Protocol):
    """Protocol for collecting metrics events."""

    def record(self, event: GenerationEvent) -> None:
        """Persist or emit the metrics event."""


class LoggingMetricsCollector(MetricsCollector):
    """Default metrics collector that logs structured events."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("generation_dispatch.metrics")

    def record(self, event: GenerationEvent) -> None:
        payload = {
            "operation": event.operation,
            "provider": event.provider,
            "model_class": event.model_class,
            "status": event.status,
            "attempts": event.attempts,
            "duration_ms": round(event.duration_ms, 3),
            "error_code": event.error_code,
        }
        self._logger.info("generation_metrics", extra={"metrics": payload})


class PrometheusMetricsCollector(MetricsCollector):
    """Metrics collector backed by Prometheus client library."""

    def __init__(
        self,
        *,
        port: Optional[int] = None,
        registry: Optional[CollectorRegistry] = None,
    ) -> None:
        self._registry = registry or CollectorRegistry()
        self._events = Counter(
            "generation_events_total",
            "Total generation operations by terminal status",
            ["operation", "provider", "model_class", "status", "error_code"],
            registry=self._registry,
        )
        self._duration = Histogram(
            "generation_duration_seconds",
            "Generation operation duration including retry sleeps",
            ["operation", "provider", "status"],
            registry=self._registry,
        )
        self._attempts = Histogram(
            "generation_attempts",
            "Provider calls per generation operation",
            ["operation", "status"],
            registry=self._registry,
            buckets=(1, 2, 3, 4, 5, 10, 20),
        )
        if port is not None:
            start_http_server(port, registry=self._registry)

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record(self, event: GenerationEvent) -> None:
        provider = event.provider or "unknown"
        self._events.labels(
            operation=event.operation,
            provider=provider,
            model_class=event.model_class or "unknown",
            status=event.status,
            error_code=event.error_code or "none",
        ).inc()
        self._duration.labels(
            operation=event.operation,
            provider=provider,
            status=event.status,
        ).observe(max(event.duration_ms / 1000.0, 0.0))
        self._attempts.labels(
            operation=event.operation,
            status=event.status,
        ).observe(max(float(event.attempts), 0.0))
