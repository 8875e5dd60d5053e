"""Prometheus metrics for the table store."""

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
    """Registry of all table store metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Table mutation metrics
        self.mutations_total = Counter(
            "tabular_store_mutations_total",
            "Total number of table mutations",
            ["operation"],  # insert/update/delete
            registry=self._registry,
        )

        self.rows_affected_total = Counter(
            "tabular_store_rows_affected_total",
            "Total rows affected by mutations",
            ["operation"],
            registry=self._registry,
        )

        self.tables = Gauge(
            "tabular_store_tables",
            "Number of registered tables",
            registry=self._registry,
        )

        # Snapshot persistence metrics
        self.snapshot_writes_total = Counter(
            "tabular_store_snapshot_writes_total",
            "Total snapshot write attempts",
            ["status"],  # success, failure
            registry=self._registry,
        )

        self.snapshot_retries_total = Counter(
            "tabular_store_snapshot_retries_total",
            "Total snapshot writes scheduled for retry",
            registry=self._registry,
        )

        self.snapshot_dropped_total = Counter(
            "tabular_store_snapshot_dropped_total",
            "Total snapshots dropped after exhausting retries",
            registry=self._registry,
        )

        self.snapshot_write_latency_seconds = Histogram(
            "tabular_store_snapshot_write_latency_seconds",
            "Snapshot write latency in seconds",
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        self.persistence_queue_length = Gauge(
            "tabular_store_persistence_queue_length",
            "Snapshots waiting to be written",
            registry=self._registry,
        )

        # Restoration metrics
        self.restored_rows_total = Counter(
            "tabular_store_restored_rows_total",
            "Total rows re-inserted from snapshots at startup",
            registry=self._registry,
        )

        self.info = Info(
            "tabular_store",
            "Table store information",
            registry=self._registry,
        )


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up the Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    if _metrics is None or registry is not None:
        _metrics = MetricsRegistry(registry)

    from tabular_store import __version__
    _metrics.info.info({
        "version": __version__,
    })

    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
