"""Payment Gateway Interface - shared base class for all processor clients.

Defines the error hierarchy, the normalized webhook result and the
instrumentation every outbound processor call goes through.
"""

import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from opentelemetry import trace

from paygate.core.metrics import (
    GATEWAY_REQUESTS_TOTAL,
    GATEWAY_REQUEST_DURATION_SECONDS,
)
from paygate.core.tracing import create_span, record_exception


class GatewayError(Exception):
    """Base error raised by processor clients."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider


class GatewayConfigurationError(GatewayError):
    """Raised when a processor is called without its credentials."""


class GatewayRequestError(GatewayError):
    """Raised when a processor call fails.

    ``status_code`` is the upstream HTTP status when the processor answered,
    ``None`` for transport failures. ``body`` is the parsed error body.
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[dict] = None,
    ):
        super().__init__(message, provider)
        self.status_code = status_code
        self.body = body or {}


class WebhookSignatureError(GatewayError):
    """Raised when an inbound webhook fails authenticity checks."""


@dataclass
class WebhookResult:
    """Normalized view of an inbound processor event."""
    provider: str
    event_type: str
    is_successful: bool = False
    transaction_id: Optional[str] = None
    amount: Optional[float] = None
    user_id: Optional[str] = None
    currency_id: Optional[str] = None
    status: Optional[str] = None


def opaque_id(value: Any) -> Optional[str]:
    """Coerce a client supplied identifier (string or number) to text."""
    if value is None or value == "":
        return None
    return str(value)


class PaymentGatewayInterface(ABC):
    """Base class for processor clients.

    Holds credentials and the outbound HTTP configuration, and wraps every
    processor call in a client span plus request metrics.
    """

    provider: str = ""

    def __init__(
        self,
        api_secret: Optional[str],
        webhook_secret: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize gateway.

        Args:
            api_secret: Secret API key used to authenticate outbound calls
            webhook_secret: Secret used to authenticate inbound webhooks
            timeout: Outbound request timeout in seconds
            transport: Optional httpx transport (tests inject a mock one)
        """
        self._api_secret = api_secret or None
        self._webhook_secret = webhook_secret or None
        self.timeout = timeout
        self.transport = transport

    @property
    def api_secret(self) -> str:
        """Get the API secret, failing loudly when it is not configured."""
        if not self._api_secret:
            raise GatewayConfigurationError(
                f"{self.provider} API credentials are not configured",
                provider=self.provider,
            )
        return self._api_secret

    @property
    def webhook_secret(self) -> Optional[str]:
        return self._webhook_secret

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    @contextmanager
    def _track(self, operation: str):
        """Record a span and metrics around one processor operation."""
        start_time = time.perf_counter()
        outcome = "success"
        with create_span(
            f"{self.provider}.{operation}",
            attributes={
                "payment.provider": self.provider,
                "payment.operation": operation,
            },
            kind=trace.SpanKind.CLIENT,
        ):
            try:
                yield
            except Exception as e:
                outcome = "error"
                record_exception(e)
                raise
            finally:
                GATEWAY_REQUEST_DURATION_SECONDS.labels(
                    provider=self.provider, operation=operation
                ).observe(time.perf_counter() - start_time)
                GATEWAY_REQUESTS_TOTAL.labels(
                    provider=self.provider, operation=operation, outcome=outcome
                ).inc()

    @abstractmethod
    def parse_webhook(self, payload: Any) -> WebhookResult:
        """Normalize an already authenticated webhook payload.

        Args:
            payload: Decoded webhook payload

        Returns:
            WebhookResult describing the event
        """


def error_body(response: httpx.Response) -> dict:
    """Decode an error response body, tolerating non-JSON bodies."""
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
