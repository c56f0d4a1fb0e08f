"""
Observability Module

Structured logging and OpenTelemetry counters.
"""

from .metrics import (
    init_metrics,
    get_meter,
    record_counter,
)
from .logging import configure_logging

__all__ = [
    # Metrics
    "init_metrics",
    "get_meter",
    "record_counter",
    # Logging
    "configure_logging",
]
