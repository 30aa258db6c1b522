"""
OpenTelemetry Trace Context Propagation

Carries the active trace context across the broker inside NATS message
headers (W3C ``traceparent`` / ``tracestate``).
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.propagate import extract, inject
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = logging.getLogger(__name__)

TRACER_NAME = "natstore"


def setup_tracer(service_name: str, otlp_endpoint: str = "localhost:4317"):
    """Configure OpenTelemetry tracer

    Args:
        service_name: Service name
        otlp_endpoint: OTLP receiver address
    """
    provider = TracerProvider()
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
    trace.set_tracer_provider(provider)

    logger.info(f"OpenTelemetry trace configured, service name: {service_name}, OTLP endpoint: {otlp_endpoint}")
    return trace.get_tracer(service_name)


def inject_trace_headers(headers: Optional[Dict[str, str]] = None) -> Optional[Dict[str, str]]:
    """Add the current trace context to a header dict

    Returns:
        Dict[str, str]: Headers including trace fields, None when both the
        input and the active context are empty
    """
    carrier: Dict[str, str] = dict(headers or {})
    inject(carrier)
    return carrier or None


def extract_trace_context(headers: Optional[Dict[str, str]]) -> Optional[Context]:
    """Rebuild a trace context from received headers"""
    if not headers:
        return None
    return extract(headers)


@contextmanager
def create_span(name: str, context: Optional[Context] = None,
                attributes: Optional[Dict[str, Any]] = None) -> Iterator[Any]:
    """Start a span, optionally parented on an extracted context"""
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(name, context=context, attributes=attributes) as span:
        yield span
