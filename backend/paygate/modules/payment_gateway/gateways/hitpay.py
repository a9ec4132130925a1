"""HitPay payment gateway implementation.

Creates QR payment requests through the HitPay REST API and authenticates
webhooks with an HMAC-SHA256 of the raw body keyed with the webhook salt.
"""

import hashlib
import hmac
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from paygate.modules.payment_gateway.interface import (
    PaymentGatewayInterface,
    GatewayRequestError,
    WebhookResult,
    error_body,
    opaque_id,
)
from paygate.modules.payment_gateway.methods import QRMethod

logger = logging.getLogger(__name__)

PAYMENT_COMPLETED = "completed"


def compute_signature(raw_body: bytes, salt: str) -> str:
    """Hex HMAC-SHA256 of ``raw_body`` keyed with ``salt``."""
    return hmac.new(salt.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature: Optional[str], salt: Optional[str]) -> bool:
    """Check a HitPay webhook signature in constant time.

    Args:
        raw_body: Request body exactly as received
        signature: Value of the ``Hitpay-Signature`` header
        salt: Webhook salt from the HitPay dashboard

    Returns:
        True when the signature matches
    """
    if not raw_body or not signature or not salt:
        return False
    return hmac.compare_digest(compute_signature(raw_body, salt), signature.strip().lower())


class HitPayGateway(PaymentGatewayInterface):
    """HitPay payment gateway implementation.

    Supports:
    - PromptPay QR (THB)
    - PayNow QR (SGD)
    """

    provider = "hitpay"

    def __init__(
        self,
        api_secret: Optional[str],
        api_url: str,
        webhook_secret: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            api_secret,
            webhook_secret=webhook_secret,
            timeout=timeout,
            transport=transport,
        )
        self.api_url = api_url

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "X-BUSINESS-API-KEY": self.api_secret,
            "X-Requested-With": "XMLHttpRequest",
        }

    async def create_payment_request(
        self,
        method: QRMethod,
        amount: Decimal,
        user_id: Optional[str],
        currency_id: Optional[str],
    ) -> dict:
        """Create a QR payment request.

        The user and currency identifiers ride along in ``name`` and
        ``reference_number``; HitPay echoes both back on the webhook.

        Args:
            method: QR scheme to charge through
            amount: Amount in the base currency unit
            user_id: Opaque client user identifier
            currency_id: Opaque client currency identifier

        Returns:
            HitPay payment request object

        Raises:
            GatewayRequestError: HitPay answered with an error or was unreachable
        """
        request_body = {
            "amount": format(amount, "f"),
            "currency": method.hitpay_currency,
            "payment_methods": [method.hitpay_payment_method],
            "generate_qr": True,
            "name": user_id,
            "reference_number": currency_id,
        }

        with self._track("create_payment_request"):
            async with self._client() as client:
                try:
                    response = await client.post(
                        self.api_url,
                        json=request_body,
                        headers=self._headers(),
                    )
                    response.raise_for_status()
                except httpx.HTTPStatusError as e:
                    body = error_body(e.response)
                    raise GatewayRequestError(
                        body.get("message")
                        or body.get("error")
                        or f"Failed to create payment request for {method.name} with HitPay.",
                        provider=self.provider,
                        status_code=e.response.status_code,
                        body=body,
                    ) from e
                except httpx.HTTPError as e:
                    raise GatewayRequestError(
                        str(e) or e.__class__.__name__,
                        provider=self.provider,
                    ) from e
            return response.json()

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        if not self.webhook_secret:
            logger.error("HitPay webhook salt is not configured")
            return False
        return verify_signature(raw_body, signature, self.webhook_secret)

    def parse_webhook(self, payload: Any) -> WebhookResult:
        """Normalize a verified HitPay payment webhook.

        Raises:
            ValueError: A completed payment carries an unparseable amount
        """
        status = payload.get("status")
        amount = payload.get("amount")
        is_successful = status == PAYMENT_COMPLETED

        parsed_amount = None
        if amount is not None and amount != "":
            try:
                parsed_amount = float(Decimal(str(amount)))
            except InvalidOperation as e:
                if is_successful:
                    raise ValueError(f"Invalid HitPay amount: {amount!r}") from e

        return WebhookResult(
            provider=self.provider,
            event_type=f"payment.{status}",
            is_successful=is_successful,
            transaction_id=opaque_id(payload.get("id")),
            amount=parsed_amount,
            user_id=opaque_id(payload.get("name")),
            currency_id=opaque_id(payload.get("reference_number")),
            status=status,
        )
