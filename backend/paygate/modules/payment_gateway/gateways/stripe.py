"""Stripe payment gateway implementation.

PromptPay QR charges through PaymentIntents, and webhook verification with
the signature check the Stripe SDK provides.
"""

import logging
from typing import Any, Optional

from fastapi.concurrency import run_in_threadpool

from paygate.modules.payment_gateway.interface import (
    PaymentGatewayInterface,
    GatewayConfigurationError,
    GatewayRequestError,
    WebhookResult,
    WebhookSignatureError,
    opaque_id,
)
from paygate.modules.payment_gateway.methods import STRIPE_PROMPTPAY_CURRENCY

logger = logging.getLogger(__name__)

PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"


def _field(obj: Any, name: str) -> Any:
    """Read a field from a Stripe object or a plain dict."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class StripeGateway(PaymentGatewayInterface):
    """Stripe payment gateway implementation.

    Supports:
    - PromptPay QR via PaymentIntents
    - Signed webhooks
    """

    provider = "stripe"

    def __init__(
        self,
        api_secret: Optional[str],
        webhook_secret: Optional[str] = None,
    ):
        super().__init__(api_secret, webhook_secret=webhook_secret)
        self._stripe = None

    def _get_stripe(self):
        """Get configured Stripe client."""
        if self._stripe is None:
            import stripe
            self._stripe = stripe
            self._stripe.api_key = self.api_secret
        return self._stripe

    async def create_promptpay_intent(
        self,
        amount: int,
        metadata: dict,
        email: Optional[str] = None,
    ) -> dict:
        """Create and confirm a PromptPay PaymentIntent.

        Confirming the intent is what makes Stripe render the QR code.

        Args:
            amount: Amount in satang
            metadata: Metadata echoed back on the webhook event
            email: Billing email of the payer

        Returns:
            Dict with the intent id, amount and the QR code details
        """
        stripe = self._get_stripe()

        try:
            with self._track("create_payment_intent"):
                intent = await run_in_threadpool(
                    stripe.PaymentIntent.create,
                    amount=amount,
                    currency=STRIPE_PROMPTPAY_CURRENCY,
                    payment_method_types=["promptpay"],
                    metadata=metadata,
                )

            with self._track("confirm_payment_intent"):
                confirmed = await run_in_threadpool(
                    stripe.PaymentIntent.confirm,
                    _field(intent, "id"),
                    payment_method_data={
                        "type": "promptpay",
                        "billing_details": {"email": email},
                    },
                )
        except stripe.StripeError as e:
            raise GatewayRequestError(
                getattr(e, "user_message", None) or str(e),
                provider=self.provider,
                status_code=getattr(e, "http_status", None),
            ) from e

        qr_code = _field(_field(confirmed, "next_action"), "promptpay_display_qr_code")

        return {
            "id": _field(confirmed, "id"),
            "qr_data_svg": _field(qr_code, "image_url_svg"),
            "qr_data_png": _field(qr_code, "image_url_png"),
            "data": _field(qr_code, "data"),
            "hosted_instructions_url": _field(qr_code, "hosted_instructions_url"),
            "amount": _field(confirmed, "amount"),
        }

    def construct_event(self, raw_body: bytes, signature: Optional[str]) -> Any:
        """Verify a webhook signature and decode the event.

        Args:
            raw_body: Request body exactly as received
            signature: Value of the ``Stripe-Signature`` header

        Returns:
            The Stripe event

        Raises:
            WebhookSignatureError: The signature or payload is invalid
        """
        if not self.webhook_secret:
            raise GatewayConfigurationError(
                "Stripe webhook secret is not configured",
                provider=self.provider,
            )

        import stripe

        try:
            return stripe.Webhook.construct_event(
                payload=raw_body,
                sig_header=signature or "",
                secret=self.webhook_secret,
            )
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookSignatureError(str(e), provider=self.provider) from e

    def parse_webhook(self, payload: Any) -> WebhookResult:
        """Normalize a verified Stripe event."""
        event_type = _field(payload, "type") or "unknown"
        intent = _field(_field(payload, "data"), "object")
        metadata = _field(intent, "metadata")
        amount = _field(intent, "amount")

        return WebhookResult(
            provider=self.provider,
            event_type=event_type,
            is_successful=event_type == PAYMENT_INTENT_SUCCEEDED,
            transaction_id=_field(intent, "id"),
            amount=amount / 100 if amount is not None else None,
            user_id=opaque_id(_field(metadata, "payniUserId")),
            currency_id=opaque_id(_field(metadata, "currencyId")),
            status=_field(intent, "status"),
        )
