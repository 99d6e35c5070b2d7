"""
OpenTelemetry Distributed Tracing

Configures the tracer provider shared by the marketplace and payment services.
Spans are exported to the console when OTEL_CONSOLE_EXPORT is enabled; otherwise
they are only available to in-process span processors.
"""

import logging

from opentelemetry import trace
from opentelemetry.instrumentation.django import DjangoInstrumentor
from opentelemetry.instrumentation.requests import RequestsInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger(__name__)

_initialized = False


def setup_tracing(service_name: str = "goldenmarket-backend", enable: bool = True, console_export: bool = False):
    """
    Initialize OpenTelemetry tracing and auto-instrument Django and requests.

    Example:
        setup_tracing(service_name=settings.OTEL_SERVICE_NAME, enable=settings.OTEL_TRACING_ENABLED)
    """
    global _initialized

    if _initialized:
        logger.warning("Tracing already initialized. Skipping.")
        return

    if not enable:
        logger.info("Tracing disabled via configuration")
        return

    try:
        resource = Resource(attributes={SERVICE_NAME: service_name})
        tracer_provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(tracer_provider)

        if console_export:
            tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
            logger.info("Console span exporter enabled")

        # Auto-instrument Django (traces all HTTP requests)
        DjangoInstrumentor().instrument()

        # Auto-instrument requests library (traces calls to the shipping provider)
        RequestsInstrumentor().instrument()

        _initialized = True
        logger.info(f"OpenTelemetry tracing initialized for service: {service_name}")

    except Exception as e:
        logger.error(f"Failed to initialize tracing: {e}", exc_info=True)


def get_tracer(name: str = __name__) -> trace.Tracer:
    """
    Get a tracer for creating custom spans.

    Example:
        tracer = get_tracer(__name__)

        with tracer.start_as_current_span("order.create"):
            ...
    """
    return trace.get_tracer(name)


def add_span_attributes(span: trace.Span, **attributes) -> None:
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, str(value))
