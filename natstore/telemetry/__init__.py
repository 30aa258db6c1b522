"""
OpenTelemetry Integration Module

- metrics: publish/delivery counters and latency histograms
- tracer: trace context propagation through NATS headers
"""

from .metrics import setup_metrics, get_counter, get_histogram, increment_counter, record_latency
from .tracer import (
    setup_tracer,
    inject_trace_headers,
    extract_trace_context,
    create_span
)

__all__ = [
    "setup_metrics",
    "get_counter",
    "get_histogram",
    "increment_counter",
    "record_latency",
    "setup_tracer",
    "inject_trace_headers",
    "extract_trace_context",
    "create_span"
]
