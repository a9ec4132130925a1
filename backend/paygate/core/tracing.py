"""OpenTelemetry tracing for the payment gateway shim.

The tracing middleware opens one SERVER span per inbound request. Gateway
clients open a CLIENT span around every call to Omise, Stripe or HitPay, so
a slow charge shows which processor step held it up.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.propagate import set_global_textmap
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, Status, StatusCode
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

logger = logging.getLogger(__name__)

TRACER_NAME = "paygate"

_provider: Optional[TracerProvider] = None


def setup_tracing(
    service_name: str,
    service_version: str,
    environment: str = "development",
    otlp_endpoint: Optional[str] = None,
    enable_console_export: bool = False,
) -> None:
    """Install the global tracer provider.

    Spans go to an OTLP collector when ``otlp_endpoint`` is set and to
    stdout when ``enable_console_export`` is on. With neither, spans are
    still created (their IDs end up in the logs) but never exported.

    Args:
        service_name: Name reported as ``service.name``
        service_version: Name reported as ``service.version``
        environment: Reported as ``deployment.environment``
        otlp_endpoint: gRPC endpoint of an OTLP collector
        enable_console_export: Print finished spans to stdout
    """
    global _provider

    _provider = TracerProvider(
        resource=Resource.create({
            SERVICE_NAME: service_name,
            SERVICE_VERSION: service_version,
            "deployment.environment": environment,
        })
    )

    exporters = []
    if otlp_endpoint:
        exporters.append(OTLPSpanExporter(endpoint=otlp_endpoint))
    if enable_console_export:
        exporters.append(ConsoleSpanExporter())
    for exporter in exporters:
        _provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(_provider)
    set_global_textmap(TraceContextTextMapPropagator())

    logger.info(
        f"Tracing initialized for {service_name} v{service_version}",
        extra={"exporters": [type(e).__name__ for e in exporters]},
    )


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)


def current_ids() -> tuple[Optional[str], Optional[str]]:
    """Return ``(trace_id, span_id)`` of the active span as hex strings."""
    context = trace.get_current_span().get_span_context()
    if not context.is_valid:
        return None, None
    return format(context.trace_id, "032x"), format(context.span_id, "016x")


def get_trace_id() -> Optional[str]:
    return current_ids()[0]


@contextmanager
def create_span(
    name: str,
    attributes: Optional[dict] = None,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
) -> Iterator[Span]:
    """Run the enclosed block inside a new current span."""
    with get_tracer().start_as_current_span(
        name,
        kind=kind,
        attributes=attributes or {},
    ) as span:
        yield span


def add_span_attributes(attributes: dict) -> None:
    span = trace.get_current_span()
    for key, value in attributes.items():
        span.set_attribute(key, value)


def record_exception(exception: Exception) -> None:
    """Attach an exception to the active span and mark it failed."""
    span = trace.get_current_span()
    span.record_exception(exception)
    span.set_status(Status(StatusCode.ERROR, str(exception)))


def shutdown_tracing() -> None:
    """Flush pending spans and stop exporting."""
    if _provider is not None:
        _provider.shutdown()
        logger.info("Tracing shutdown complete")
