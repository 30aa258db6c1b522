"""
OpenTelemetry Metrics Collection

Counters and histograms for the publish and delivery paths. Until
:func:`setup_metrics` installs a MeterProvider, the OpenTelemetry API hands
out no-op instruments, so recording is always safe.
"""

import logging
from typing import Any, Dict

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    PeriodicExportingMetricReader
)
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

logger = logging.getLogger(__name__)

METER_NAME = "natstore"

# Instrument names
PUBLISHED = "natstore.messages.published"
PUBLISH_ERRORS = "natstore.messages.publish_errors"
PUBLISH_LATENCY = "natstore.publish.latency"
DELIVERED = "natstore.messages.delivered"
REDELIVERED = "natstore.messages.redelivered"
HANDLER_ERRORS = "natstore.handler.errors"
REQUESTS = "natstore.requests"
REQUEST_LATENCY = "natstore.request.latency"

_counters = {}
_histograms = {}


def setup_metrics(service_name: str, otlp_endpoint: str = "localhost:4317",
                  export_interval_ms: int = 5000, console: bool = False):
    """Configure OpenTelemetry metrics collection

    Args:
        service_name: Service name
        otlp_endpoint: OTLP receiver address
        export_interval_ms: Metrics export interval in milliseconds
        console: Also print metrics to stdout (development)

    Returns:
        Meter: Meter for the service
    """
    readers = [
        PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=otlp_endpoint),
            export_interval_millis=export_interval_ms
        )
    ]
    if console:
        readers.append(PeriodicExportingMetricReader(
            ConsoleMetricExporter(),
            export_interval_millis=export_interval_ms
        ))

    metrics.set_meter_provider(MeterProvider(metric_readers=readers))

    # instruments created against the old provider are stale now
    _counters.clear()
    _histograms.clear()

    logger.info(f"OpenTelemetry metrics configured, service name: {service_name}, OTLP endpoint: {otlp_endpoint}")
    return metrics.get_meter(service_name)


def get_counter(name: str, description: str, unit: str = "1"):
    """Get or create counter"""
    if name not in _counters:
        _counters[name] = metrics.get_meter(METER_NAME).create_counter(
            name=name,
            description=description,
            unit=unit
        )
    return _counters[name]


def get_histogram(name: str, description: str, unit: str = "ms"):
    """Get or create histogram"""
    if name not in _histograms:
        _histograms[name] = metrics.get_meter(METER_NAME).create_histogram(
            name=name,
            description=description,
            unit=unit
        )
    return _histograms[name]


def increment_counter(name: str, amount: int = 1, attributes: Dict[str, Any] = None):
    """Increment counter value

    Args:
        name: Counter name
        amount: Amount to increment
        attributes: Attribute labels
    """
    get_counter(name, f"Counter for {name}").add(amount, attributes or {})


def record_latency(name: str, value_ms: float, attributes: Dict[str, Any] = None):
    """Record latency histogram

    Args:
        name: Histogram name
        value_ms: Latency value in milliseconds
        attributes: Attribute labels
    """
    get_histogram(name, f"Latency histogram for {name}").record(value_ms, attributes or {})
