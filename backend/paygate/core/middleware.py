"""FastAPI middleware for monitoring, tracing, and logging.

Registered outermost first: metrics, correlation ID, tracing, request log.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from paygate.core.logging import clear_correlation_id, get_correlation_id, set_correlation_id
from paygate.core.metrics import (
    HTTP_REQUESTS_IN_PROGRESS,
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION_SECONDS,
)
from paygate.core.tracing import add_span_attributes, create_span, record_exception

request_logger = logging.getLogger("paygate.requests")


def _route_template(request: Request) -> str:
    """Return the matched route path (``/get-omise-customer-id/{email}``).

    Path parameters carry emails and customer IDs, so raw paths are never
    used as metric labels or span attributes.
    """
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count and time every request by route template."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        in_progress = HTTP_REQUESTS_IN_PROGRESS.labels(method=method)
        in_progress.inc()

        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            endpoint = _route_template(request)
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )
            HTTP_REQUESTS_TOTAL.labels(
                method=method, endpoint=endpoint, status_code=str(status_code)
            ).inc()
            in_progress.dec()


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Adopt the caller's ``X-Correlation-ID`` (or mint one) and echo it back."""

    CORRELATION_ID_HEADER = "X-Correlation-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(self.CORRELATION_ID_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
            response.headers[self.CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()


class TracingMiddleware(BaseHTTPMiddleware):
    """Open a SERVER span per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method

        with create_span(
            f"HTTP {method}",
            attributes={
                "http.method": method,
                "http.scheme": request.url.scheme,
                "http.user_agent": request.headers.get("user-agent", ""),
                "correlation_id": get_correlation_id(),
            },
            kind=trace.SpanKind.SERVER,
        ):
            try:
                response = await call_next(request)
            except Exception as e:
                record_exception(e)
                raise
            add_span_attributes({
                "http.route": _route_template(request),
                "http.status_code": response.status_code,
            })
            return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per completed request.

    Request bodies are never logged: they carry card tokens and bank
    account numbers.
    """

    def __init__(self, app: ASGIApp, skip_paths: tuple[str, ...] = ("/health", "/metrics")):
        super().__init__(app)
        self.skip_paths = skip_paths

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.skip_paths:
            return await call_next(request)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            request_logger.exception(
                "Request failed",
                extra={
                    "method": request.method,
                    "route": _route_template(request),
                    "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                },
            )
            raise

        request_logger.info(
            f"{request.method} {_route_template(request)} {response.status_code}",
            extra={
                "method": request.method,
                "route": _route_template(request),
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                "client_ip": request.client.host if request.client else None,
            },
        )
        return response
