"""
OpenTelemetry Metrics

Delivery and retry counters for the outbox client and the event poller.
"""

import logging
from typing import Optional, Dict, Any

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricReader,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource, SERVICE_NAME

logger = logging.getLogger(__name__)

METER_NAME = "cqrs-sync"

# Global meter
_meter: Optional[metrics.Meter] = None

# Metric instruments
_counters: Dict[str, metrics.Counter] = {}

STANDARD_COUNTERS = {
    "outbox_commands_submitted_total": "Commands accepted into the outbox",
    "outbox_commands_delivered_total": "Commands acknowledged by the server",
    "outbox_retries_total": "Outbox delivery attempts scheduled for retry",
    "stream_events_delivered_total": "Events handed to the consumer",
    "stream_retries_total": "Event polls scheduled for retry after an error",
}


def init_metrics(
    service_name: str = METER_NAME,
    console_export: bool = False,
    export_interval_ms: int = 60000,
    reader: Optional[MetricReader] = None
) -> metrics.Meter:
    """
    Initialize OpenTelemetry metrics.

    Args:
        service_name: Name of the service
        console_export: Enable console export for debugging
        export_interval_ms: Export interval in milliseconds
        reader: Extra metric reader (e.g. InMemoryMetricReader in tests)

    Returns:
        Configured meter
    """
    global _meter

    readers = []

    if console_export:
        readers.append(PeriodicExportingMetricReader(
            ConsoleMetricExporter(),
            export_interval_millis=export_interval_ms
        ))
        logger.info("OTel metrics: Console exporter enabled")

    if reader is not None:
        readers.append(reader)

    resource = Resource.create({SERVICE_NAME: service_name})

    provider = MeterProvider(resource=resource, metric_readers=readers)
    metrics.set_meter_provider(provider)

    _meter = provider.get_meter(service_name)
    _counters.clear()

    logger.info(f"OTel metrics initialized: {service_name}")

    return _meter


def get_meter() -> metrics.Meter:
    """Get the global meter."""
    global _meter
    if _meter is None:
        _meter = metrics.get_meter(METER_NAME)
    return _meter


def _get_counter(name: str) -> Optional[metrics.Counter]:
    if name not in STANDARD_COUNTERS:
        return None
    if name not in _counters:
        _counters[name] = get_meter().create_counter(
            name,
            description=STANDARD_COUNTERS[name],
            unit="1"
        )
    return _counters[name]


def record_counter(
    name: str,
    value: int = 1,
    attributes: Dict[str, Any] = None
):
    """Record a counter metric. Unknown names are ignored."""
    counter = _get_counter(name)
    if counter is not None:
        counter.add(value, attributes or {})
