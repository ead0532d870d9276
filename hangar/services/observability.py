"""Observability - OpenTelemetry tracing for the booking flow."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.jaeger.thrift import JaegerExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from hangar.config.settings import get_settings
from hangar.utils.logger import get_logger

logger = get_logger(__name__)

TRACER_NAME = "hangar.booking"

# Rotas com alto volume e sem valor de diagnóstico
EXCLUDED_URLS = "health"


def setup_tracing() -> bool:
    """Register the Jaeger exporter as the global tracer provider.

    Returns:
        True when spans will be exported.
    """
    settings = get_settings()

    if not settings.enable_tracing:
        logger.info("tracing_disabled")
        return False

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.service_name,
                "deployment.environment": settings.app_env,
            }
        )
    )

    try:
        provider.add_span_processor(
            BatchSpanProcessor(JaegerExporter(collector_endpoint=settings.jaeger_endpoint))
        )
    except Exception as e:
        logger.warning("tracing_setup_failed", error=str(e))
        return False

    trace.set_tracer_provider(provider)
    logger.info(
        "tracing_configured",
        service_name=settings.service_name,
        jaeger_endpoint=settings.jaeger_endpoint,
    )
    return True


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every booking route except the health check."""
    if not get_settings().enable_tracing:
        return

    try:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=EXCLUDED_URLS)
    except Exception as e:
        logger.warning("fastapi_instrumentation_failed", error=str(e))


def get_current_trace_id() -> str | None:
    """Trace ID of the active span as hex, or None outside a trace."""
    context = trace.get_current_span().get_span_context()
    if context.is_valid:
        return format(context.trace_id, "032x")
    return None


@contextmanager
def booking_span(name: str, **attributes: Any) -> Iterator[trace.Span]:
    """Open a span for a booking-flow step with tenant/slot attributes.

    Args:
        name: Span name (e.g. "commit_booking").
        **attributes: Span attributes; None values are skipped.

    Yields:
        The active span.
    """
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(f"hangar.{key}", value)
        yield span
