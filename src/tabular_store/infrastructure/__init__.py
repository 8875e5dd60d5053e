"""Infrastructure layer - cross-cutting concerns."""

from tabular_store.infrastructure.config import Config, get_config
from tabular_store.infrastructure.logging import setup_logging, get_logger
from tabular_store.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from tabular_store.infrastructure.tracing import get_tracer, setup_tracing, trace_span

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
]
