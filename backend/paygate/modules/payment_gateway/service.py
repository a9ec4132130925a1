"""Payment Gateway services.

Implements:
- Gateway factory building processor clients from settings
- Charge creation across Omise, Stripe and HitPay
- Omise customer and card management
- Omise payout chain with compensating deletes
- Webhook handling and transaction recording
"""

import json
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from paygate.core.config import settings
from paygate.core.logging import log_error, log_info, log_warning
from paygate.core.metrics import TRANSACTIONS_RECORDED_TOTAL, WEBHOOK_EVENTS_TOTAL
from paygate.modules.payment_gateway.interface import (
    PaymentGatewayInterface,
    GatewayError,
    WebhookResult,
    WebhookSignatureError,
    opaque_id,
)
from paygate.modules.payment_gateway.methods import QRMethod
from paygate.modules.payment_gateway.models import GatewayProvider
from paygate.modules.payment_gateway.repository import TransactionRepository
from paygate.modules.payment_gateway.schemas import (
    OmiseQRChargeRequest,
    OmiseCardChargeRequest,
    StripeQRChargeRequest,
    HitPayQRChargeRequest,
    RecipientRequest,
    PayoutRequest,
)
from paygate.modules.payment_gateway.gateways import (
    OmiseGateway,
    StripeGateway,
    HitPayGateway,
)

logger = logging.getLogger(__name__)

INVALID_AMOUNT = "Valid amount is required."


def _build_omise() -> OmiseGateway:
    return OmiseGateway(
        settings.OMISE_SECRET_KEY,
        base_url=settings.OMISE_API_URL,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )


def _build_stripe() -> StripeGateway:
    return StripeGateway(
        settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
    )


def _build_hitpay() -> HitPayGateway:
    return HitPayGateway(
        settings.HITPAY_API_KEY,
        api_url=settings.HITPAY_API_URL,
        webhook_secret=settings.HITPAY_WEBHOOK_SALT,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )


class PaymentGatewayFactory:
    """Factory for creating payment gateway instances from settings."""

    _builders: dict[str, Callable[[], PaymentGatewayInterface]] = {
        GatewayProvider.OMISE.value: _build_omise,
        GatewayProvider.STRIPE.value: _build_stripe,
        GatewayProvider.HITPAY.value: _build_hitpay,
    }

    @classmethod
    def create(cls, provider: str) -> PaymentGatewayInterface:
        """Create a gateway instance for a provider.

        Args:
            provider: Gateway provider name

        Returns:
            Configured gateway instance

        Raises:
            ValueError: Unknown provider
        """
        build = cls._builders.get(provider)
        if build is None:
            raise ValueError(f"Unsupported gateway provider: {provider}")
        return build()

    @classmethod
    def get_supported_providers(cls) -> list[str]:
        return list(cls._builders.keys())


def _is_positive(amount: Any) -> bool:
    return amount is not None and amount > 0


def _charge_metadata(user_id: Any, currency_id: Any) -> dict:
    return {"payniUserId": user_id, "currencyId": currency_id}


class ChargeService:
    """Creates charges on whichever processor the endpoint targets."""

    def __init__(
        self,
        omise: Optional[OmiseGateway] = None,
        stripe: Optional[StripeGateway] = None,
        hitpay: Optional[HitPayGateway] = None,
    ):
        self.omise = omise
        self.stripe = stripe
        self.hitpay = hitpay

    async def create_omise_qr_charge(
        self,
        method: QRMethod,
        data: OmiseQRChargeRequest,
    ) -> dict:
        """Create an Omise QR charge.

        Raises:
            ValueError: Amount missing or not positive
            GatewayError: Omise call failed
        """
        if not _is_positive(data.amount):
            raise ValueError(INVALID_AMOUNT)

        charge = await self.omise.create_qr_charge(
            method,
            data.amount,
            _charge_metadata(data.user_id, data.currency_id),
        )
        log_info(
            logger,
            f"Omise {method.name} charge created",
            charge_id=charge.get("id"),
            amount=data.amount,
        )
        return charge

    async def create_omise_card_charge(self, data: OmiseCardChargeRequest) -> dict:
        """Charge a stored customer card on Omise.

        Raises:
            ValueError: Amount, customer or card missing
            GatewayError: Omise call failed
        """
        if not _is_positive(data.amount) or not data.customer_id or not data.card_id:
            raise ValueError("Valid amount, omiseCustomerId, and cardId are required.")

        charge = await self.omise.create_card_charge(
            data.amount,
            data.customer_id,
            data.card_id,
            _charge_metadata(data.user_id, data.currency_id),
        )
        log_info(logger, "Omise card charge created", charge_id=charge.get("id"))
        return charge

    async def mark_omise_charge_paid(self, charge_id: Optional[str]) -> None:
        if not charge_id:
            raise ValueError("chargeId is required.")
        await self.omise.mark_charge_as_paid(charge_id)

    async def create_stripe_promptpay_charge(self, data: StripeQRChargeRequest) -> dict:
        """Create and confirm a Stripe PromptPay PaymentIntent.

        Raises:
            ValueError: Amount missing or not positive
            GatewayError: Stripe call failed
        """
        if not _is_positive(data.amount):
            raise ValueError(INVALID_AMOUNT)

        return await self.stripe.create_promptpay_intent(
            data.amount,
            _charge_metadata(data.user_id, data.currency_id),
            email=data.email,
        )

    async def create_hitpay_qr_charge(
        self,
        method: QRMethod,
        data: HitPayQRChargeRequest,
    ) -> dict:
        """Create a HitPay QR payment request.

        Raises:
            ValueError: Amount missing or not positive
            GatewayRequestError: HitPay call failed
        """
        if not _is_positive(data.amount):
            raise ValueError(INVALID_AMOUNT)

        amount: Decimal = data.amount
        try:
            charge = await self.hitpay.create_payment_request(
                method,
                amount,
                opaque_id(data.user_id),
                opaque_id(data.currency_id),
            )
        except GatewayError as e:
            log_error(
                logger,
                f"Server error during HitPay {method.name} charge creation: {e.message}",
            )
            raise

        return {
            "id": charge.get("id"),
            "qr_code_data": charge.get("qr_code_data"),
            "status": charge.get("status"),
            "amount": charge.get("amount"),
        }


class CustomerService:
    """Omise customer and stored card management."""

    def __init__(self, omise: OmiseGateway):
        self.omise = omise

    async def create_customer(self, email: Optional[str]) -> dict:
        if not email:
            raise ValueError("Email is required.")
        return await self.omise.create_customer(email)

    async def find_customer_id(self, email: str) -> Optional[str]:
        """Look up a customer ID by email.

        Returns:
            Customer ID, or None when no customer matches
        """
        if not email:
            raise ValueError("Customer email is required for search.")
        customers = await self.omise.search_customers(email, limit=1)
        if not customers:
            return None
        return customers[0].get("id")

    async def add_card(self, customer_id: Optional[str], card_token: Optional[str]) -> Optional[dict]:
        """Attach a card token to a customer.

        Returns:
            The newly attached card (last in the customer's card list)
        """
        if not customer_id or not card_token:
            raise ValueError("omiseCustomerId and cardToken are required.")

        customer = await self.omise.attach_card(customer_id, card_token)
        cards = (customer.get("cards") or {}).get("data") or []
        return cards[-1] if cards else None

    async def list_cards(self, customer_id: str) -> list[dict]:
        if not customer_id:
            raise ValueError("omiseCustomerId is required.")
        return await self.omise.list_cards(customer_id)


class PayoutService:
    """Omise recipients and the create → verify → transfer → settle payout chain."""

    def __init__(self, omise: OmiseGateway):
        self.omise = omise

    async def create_recipient(self, data: RecipientRequest) -> dict:
        if not data.name or not data.bank_account:
            raise ValueError("Name and bank account details are required.")
        return await self.omise.create_recipient(
            data.name,
            data.bank_account.model_dump(),
        )

    async def create_payout(self, data: PayoutRequest) -> None:
        """Pay an amount out to a bank account.

        Creates a throwaway recipient, verifies it, creates a transfer, marks
        it sent and paid, then deletes the recipient. If a step before the
        transfer is paid fails, the transfer and the recipient created so far
        are deleted (best effort) and the original error is re-raised.

        Raises:
            ValueError: Missing fields or invalid amount
            GatewayError: A processor step failed
        """
        if not data.name or not data.bank_account or not _is_positive(data.amount):
            raise ValueError("All fields are required and amount must be valid.")

        recipient_id: Optional[str] = None
        transfer_id: Optional[str] = None

        try:
            recipient = await self.omise.create_recipient(
                data.name,
                data.bank_account.model_dump(),
            )
            recipient_id = recipient["id"]

            await self.omise.verify_recipient(recipient_id)

            transfer = await self.omise.create_transfer(data.amount, recipient_id)
            transfer_id = transfer["id"]

            await self.omise.mark_transfer_as_sent(transfer_id)
            await self.omise.mark_transfer_as_paid(transfer_id)
        except GatewayError as e:
            log_error(logger, f"Payout failed: {e.message}", exception=e)
            await self._compensate(recipient_id, transfer_id)
            raise

        # The money has moved; a leftover recipient is not worth failing for
        try:
            await self.omise.destroy_recipient(recipient_id)
        except GatewayError as e:
            log_error(logger, "Error deleting recipient after payout", exception=e, recipient_id=recipient_id)

        log_info(logger, "Payout completed", transfer_id=transfer_id, amount=data.amount)

    async def _compensate(self, recipient_id: Optional[str], transfer_id: Optional[str]) -> None:
        """Best-effort cleanup of objects created by a failed payout."""
        if transfer_id:
            try:
                await self.omise.destroy_transfer(transfer_id)
            except GatewayError as e:
                log_error(logger, "Error cleaning up payout", exception=e, transfer_id=transfer_id)

        if recipient_id:
            try:
                await self.omise.destroy_recipient(recipient_id)
            except GatewayError as e:
                log_error(logger, "Error cleaning up recipient", exception=e, recipient_id=recipient_id)


class WebhookOutcome(str, Enum):
    """What happened to an inbound webhook event."""
    RECORDED = "recorded"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    UNCONFIRMED = "unconfirmed"
    STORE_FAILED = "store_failed"
    REJECTED = "rejected"


class WebhookService:
    """Authenticates processor webhooks and records successful payments."""

    def __init__(
        self,
        session: AsyncSession,
        omise: Optional[OmiseGateway] = None,
        stripe: Optional[StripeGateway] = None,
        hitpay: Optional[HitPayGateway] = None,
    ):
        self.session = session
        self.transaction_repo = TransactionRepository(session)
        self.omise = omise
        self.stripe = stripe
        self.hitpay = hitpay

    async def handle_omise(self, payload: dict) -> WebhookOutcome:
        """Handle an Omise event.

        Omise events carry no signature, so a successful charge is re-read
        from Omise and only recorded when Omise confirms it.
        """
        if payload.get("object") != "event":
            return self._count(GatewayProvider.OMISE, WebhookOutcome.IGNORED)

        result = self.omise.parse_webhook(payload)
        if not result.is_successful:
            log_info(logger, "Omise charge event", charge_id=result.transaction_id, status=result.status)
            return self._count(GatewayProvider.OMISE, WebhookOutcome.IGNORED)

        if not await self.omise.is_charge_successful(result.transaction_id):
            log_warning(logger, "Charge is not successful", charge_id=result.transaction_id)
            return self._count(GatewayProvider.OMISE, WebhookOutcome.UNCONFIRMED)

        log_info(logger, "Charge is successful", charge_id=result.transaction_id)
        return await self.record_transaction(result)

    async def handle_stripe(self, raw_body: bytes, signature: Optional[str]) -> WebhookOutcome:
        """Handle a Stripe event.

        Raises:
            WebhookSignatureError: Signature verification failed
        """
        try:
            event = self.stripe.construct_event(raw_body, signature)
        except WebhookSignatureError as e:
            log_error(logger, f"Stripe Webhook Error: {e.message}")
            self._count(GatewayProvider.STRIPE, WebhookOutcome.REJECTED)
            raise

        result = self.stripe.parse_webhook(event)
        if not result.is_successful:
            log_info(logger, f"Unhandled Stripe event type: {result.event_type}")
            return self._count(GatewayProvider.STRIPE, WebhookOutcome.IGNORED)

        log_info(logger, "Stripe PaymentIntent successful", payment_intent_id=result.transaction_id)
        return await self.record_transaction(result)

    async def handle_hitpay(self, raw_body: bytes, signature: Optional[str]) -> WebhookOutcome:
        """Handle a HitPay payment webhook.

        Raises:
            WebhookSignatureError: HMAC missing or mismatched, or body not JSON
        """
        if not self.hitpay.verify_signature(raw_body, signature):
            log_error(logger, "HitPay webhook HMAC validation failed")
            self._count(GatewayProvider.HITPAY, WebhookOutcome.REJECTED)
            raise WebhookSignatureError(
                "HMAC validation failed or signature/body missing.",
                provider=GatewayProvider.HITPAY.value,
            )

        try:
            payload = _decode_json(raw_body)
        except ValueError as e:
            self._count(GatewayProvider.HITPAY, WebhookOutcome.REJECTED)
            raise WebhookSignatureError("Invalid webhook payload.", provider=GatewayProvider.HITPAY.value) from e

        try:
            result = self.hitpay.parse_webhook(payload)
        except ValueError as e:
            log_error(logger, "Error processing successful HitPay payment", exception=e)
            return self._count(GatewayProvider.HITPAY, WebhookOutcome.STORE_FAILED)

        if not result.is_successful:
            log_info(logger, f"Received HitPay payment status: {result.status}")
            return self._count(GatewayProvider.HITPAY, WebhookOutcome.IGNORED)

        log_info(logger, "HitPay payment completed", payment_id=result.transaction_id)
        return await self.record_transaction(result)

    async def record_transaction(self, result: WebhookResult) -> WebhookOutcome:
        """Write a verified payment to the store exactly once.

        A store failure is logged and reported as ``STORE_FAILED`` so the
        caller can still acknowledge the processor.
        """
        provider = GatewayProvider(result.provider)

        if not result.transaction_id or result.amount is None:
            log_error(logger, "Verified event lacks a transaction id or amount", provider=result.provider)
            return self._count(provider, WebhookOutcome.STORE_FAILED)

        try:
            existing = await self.transaction_repo.get_by_transaction_id(result.transaction_id)
            if existing:
                log_info(logger, "Transaction already recorded", transaction_id=result.transaction_id)
                return self._count(provider, WebhookOutcome.DUPLICATE)

            await self.transaction_repo.record(
                amount=result.amount,
                transaction_id=result.transaction_id,
                user_id=result.user_id,
                currency_id=result.currency_id,
                is_found=False,
            )
            await self.session.commit()
        except IntegrityError:
            # A concurrent delivery of the same event committed first
            await self.session.rollback()
            log_info(logger, "Transaction already recorded", transaction_id=result.transaction_id)
            return self._count(provider, WebhookOutcome.DUPLICATE)
        except SQLAlchemyError as e:
            await self.session.rollback()
            log_error(
                logger,
                "Failed to record transaction",
                exception=e,
                transaction_id=result.transaction_id,
            )
            return self._count(provider, WebhookOutcome.STORE_FAILED)

        TRANSACTIONS_RECORDED_TOTAL.labels(provider=provider.value).inc()
        return self._count(provider, WebhookOutcome.RECORDED)

    @staticmethod
    def _count(provider: GatewayProvider, outcome: WebhookOutcome) -> WebhookOutcome:
        WEBHOOK_EVENTS_TOTAL.labels(provider=provider.value, outcome=outcome.value).inc()
        return outcome


def _decode_json(raw_body: bytes) -> dict:
    payload = json.loads(raw_body)
    if not isinstance(payload, dict):
        raise ValueError("Webhook payload must be a JSON object")
    return payload
