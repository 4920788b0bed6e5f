"""Infrastructure layer - cross-cutting concerns."""

from sqlite_pipe.infrastructure.config import Config, get_config
from sqlite_pipe.infrastructure.logging import NullLogger, setup_logging, get_logger
from sqlite_pipe.infrastructure.metrics import setup_metrics, get_metrics, MetricsRegistry
from sqlite_pipe.infrastructure.tracing import setup_tracing, get_tracer, trace_span

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "NullLogger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
]
