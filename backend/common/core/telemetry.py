from typing import Dict, Optional
import functools
import asyncio
import logging
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from common.core.config import settings

# Configure logging at module level
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    force=True,
)


# Global flag to ensure initialization only happens once
_initialized = False
tracer = None


def _initialize_telemetry():
    """Initialize telemetry once and only once."""
    global _initialized, tracer

    if _initialized:
        return

    resource = Resource(
        attributes={
            SERVICE_NAME: settings.otel_service_name,
            SERVICE_VERSION: settings.otel_service_version,
        }
    )

    provider = TracerProvider(resource=resource)
    if settings.otel_exporter_otlp_endpoint:
        headers: Dict[str, str] = {}
        if settings.otel_exporter_otlp_token:
            headers["Authorization"] = f"Bearer {settings.otel_exporter_otlp_token}"
        otlp_trace_exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            headers=headers,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_trace_exporter))
    trace.set_tracer_provider(provider)
    tracer = trace.get_tracer(settings.otel_service_name)

    logging.getLogger().setLevel(logging.DEBUG if settings.debug else logging.INFO)

    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance. Ensures telemetry is initialized.
    Use this instead of logging.getLogger() directly.
    """
    if not _initialized:
        _initialize_telemetry()
    return logging.getLogger(name)


def _span_name(func, args) -> str:
    # Methods include their class name
    if args and not isinstance(args[0], (str, bytes, int, float, dict, list)):
        return f"{args[0].__class__.__name__}.{func.__name__}"
    return func.__name__


def trace_span(func):
    """Decorator that automatically creates a span with the function name."""

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        if not _initialized:
            _initialize_telemetry()
        with tracer.start_as_current_span(_span_name(func, args)):
            return func(*args, **kwargs)

    @functools.wraps(func)
    async def async_wrapper(*args, **kwargs):
        if not _initialized:
            _initialize_telemetry()
        with tracer.start_as_current_span(_span_name(func, args)):
            return await func(*args, **kwargs)

    if asyncio.iscoroutinefunction(func):
        return async_wrapper
    else:
        return sync_wrapper


def log_span_event(message: str, attributes: Optional[Dict[str, object]] = None):
    """
    Record a message as an event on the current span and log it normally.
    """
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        current_span.add_event(message, attributes=attributes or {})

    logger = get_logger(__name__)
    logger.info(message, extra=attributes)
