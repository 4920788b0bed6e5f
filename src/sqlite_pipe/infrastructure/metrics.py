"""Prometheus metrics for the sqlite3 pipe driver."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all driver metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Request metrics
        self.requests_total = Counter(
            "sqlite_pipe_requests_total",
            "Total number of finished requests",
            ["kind", "status"],  # kind: sql, raw; status: ok, error, timeout, rejected
            registry=self._registry,
        )

        self.request_latency_seconds = Histogram(
            "sqlite_pipe_request_latency_seconds",
            "Time from enqueue to result in seconds",
            ["kind"],
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self._registry,
        )

        self.queue_depth = Gauge(
            "sqlite_pipe_queue_depth",
            "Number of requests waiting behind the in-flight one",
            registry=self._registry,
        )

        self.orphaned_results_total = Counter(
            "sqlite_pipe_orphaned_results_total",
            "Results that arrived with no caller left to receive them",
            registry=self._registry,
        )

        self.buffer_truncations_total = Counter(
            "sqlite_pipe_buffer_truncations_total",
            "Results whose buffered output exceeded the cap",
            ["stream"],  # stdout, stderr
            registry=self._registry,
        )

        # Process metrics
        self.process_faults_total = Counter(
            "sqlite_pipe_process_faults_total",
            "Fatal child process faults",
            ["reason"],  # spawn, exit, transport
            registry=self._registry,
        )

        self.info = Info(
            "sqlite_pipe",
            "sqlite3 pipe driver information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry; an existing one built on the same collector
        registry is reused, since its metric names are already registered
    """
    global _metrics
    registry = registry or REGISTRY
    if _metrics is None or _metrics.registry is not registry:
        _metrics = MetricsRegistry(registry)

    from sqlite_pipe import __version__
    _metrics.info.info({
        "version": __version__,
    })

    # Start HTTP server for Prometheus scraping
    start_http_server(port, registry=registry)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
