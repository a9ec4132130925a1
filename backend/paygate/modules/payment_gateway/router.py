"""Payment Gateway Router.

Client-facing endpoints for Omise, Stripe and HitPay charges, Omise
customers and payouts, and the inbound processor webhooks.

Paths keep the names processors and client apps are already configured with.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from paygate.core.database import get_session
from paygate.core.logging import log_error
from paygate.modules.payment_gateway.gateways import (
    OmiseGateway,
    StripeGateway,
    HitPayGateway,
)
from paygate.modules.payment_gateway.interface import (
    GatewayError,
    GatewayRequestError,
    WebhookSignatureError,
)
from paygate.modules.payment_gateway.methods import PROMPTPAY, PAYNOW, QRMethod
from paygate.modules.payment_gateway.models import GatewayProvider
from paygate.modules.payment_gateway.schemas import (
    OmiseQRChargeRequest,
    OmiseCardChargeRequest,
    ChargePaidRequest,
    StripeQRChargeRequest,
    StripeQRChargeResponse,
    HitPayQRChargeRequest,
    HitPayQRChargeResponse,
    CustomerCreateRequest,
    CustomerLookupResponse,
    AddCardRequest,
    RecipientRequest,
    PayoutRequest,
    MessageResponse,
    WebhookAck,
)
from paygate.modules.payment_gateway.service import (
    PaymentGatewayFactory,
    ChargeService,
    CustomerService,
    PayoutService,
    WebhookService,
    WebhookOutcome,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payments"])


# ==================== Dependencies ====================

def get_omise_gateway() -> OmiseGateway:
    return PaymentGatewayFactory.create(GatewayProvider.OMISE.value)


def get_stripe_gateway() -> StripeGateway:
    return PaymentGatewayFactory.create(GatewayProvider.STRIPE.value)


def get_hitpay_gateway() -> HitPayGateway:
    return PaymentGatewayFactory.create(GatewayProvider.HITPAY.value)


def _bad_request(e: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _gateway_failure(e: GatewayError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=e.message,
    )


# ==================== Omise Charges ====================

async def _omise_qr_charge(method: QRMethod, data: OmiseQRChargeRequest, omise: OmiseGateway) -> dict:
    service = ChargeService(omise=omise)
    try:
        return await service.create_omise_qr_charge(method, data)
    except ValueError as e:
        raise _bad_request(e)
    except GatewayError as e:
        log_error(logger, f"Omise {method.name} charge failed: {e.message}")
        raise _gateway_failure(e)


@router.post("/create-promptpay-charge-omise")
async def create_promptpay_charge_omise(
    data: OmiseQRChargeRequest,
    omise: OmiseGateway = Depends(get_omise_gateway),
):
    """Create a PromptPay QR charge (THB) on Omise.

    Returns the Omise charge object; the QR image is under ``source``.
    """
    return await _omise_qr_charge(PROMPTPAY, data, omise)


@router.post("/create-paynow-charge-omise")
async def create_paynow_charge_omise(
    data: OmiseQRChargeRequest,
    omise: OmiseGateway = Depends(get_omise_gateway),
):
    """Create a PayNow QR charge (SGD) on Omise."""
    return await _omise_qr_charge(PAYNOW, data, omise)


@router.post("/create-card-charge")
async def create_card_charge(
    data: OmiseCardChargeRequest,
    omise: OmiseGateway = Depends(get_omise_gateway),
):
    """Charge a card stored on an Omise customer."""
    service = ChargeService(omise=omise)
    try:
        return await service.create_omise_card_charge(data)
    except ValueError as e:
        raise _bad_request(e)
    except GatewayError as e:
        raise _gateway_failure(e)


@router.post("/charge-paid")
async def charge_paid(
    data: ChargePaidRequest,
    omise: OmiseGateway = Depends(get_omise_gateway),
):
    """Mark an Omise charge as paid (test mode)."""
    service = ChargeService(omise=omise)
    try:
        await service.mark_omise_charge_paid(data.charge_id)
    except ValueError as e:
        raise _bad_request(e)
    except GatewayError as e:
        raise _gateway_failure(e)
    return "Success"


# ==================== Omise Customers ====================

@router.post("/create-omise-customer")
async def create_omise_customer(
    data: CustomerCreateRequest,
    omise: OmiseGateway = Depends(get_omise_gateway),
):
    service = CustomerService(omise)
    try:
        return await service.create_customer(data.email)
    except ValueError as e:
        raise _bad_request(e)
    except GatewayError as e:
        raise _gateway_failure(e)


@router.get("/get-omise-customer-id/{email}", response_model=CustomerLookupResponse)
async def get_omise_customer_id(
    email: str,
    omise: OmiseGateway = Depends(get_omise_gateway),
):
    """Look up an Omise customer ID by email."""
    service = CustomerService(omise)
    try:
        customer_id = await service.find_customer_id(email)
    except ValueError as e:
        raise _bad_request(e)
    except GatewayError as e:
        log_error(logger, f"Omise search error: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to search customer: {e.message}",
        )

    if not customer_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=(
                f"Customer with email '{email}' not found. "
                "Ensure the email is correct and the customer exists."
            ),
        )

    return CustomerLookupResponse(
        message="Customer ID retrieved successfully.",
        email=email,
        customer_id=customer_id,
    )


@router.post("/add-card-to-customer")
async def add_card_to_customer(
    data: AddCardRequest,
    omise: OmiseGateway = Depends(get_omise_gateway),
):
    """Attach a tokenized card to a customer and return the new card."""
    service = CustomerService(omise)
    try:
        return await service.add_card(data.customer_id, data.card_token)
    except ValueError as e:
        raise _bad_request(e)
    except GatewayError as e:
        raise _gateway_failure(e)


@router.get("/list-customer-cards/{omise_cus_id}")
async def list_customer_cards(
    omise_cus_id: str,
    omise: OmiseGateway = Depends(get_omise_gateway),
):
    service = CustomerService(omise)
    try:
        return await service.list_cards(omise_cus_id)
    except ValueError as e:
        raise _bad_request(e)
    except GatewayError as e:
        raise _gateway_failure(e)


# ==================== Omise Payouts ====================

@router.post("/create-recipient")
async def create_recipient(
    data: RecipientRequest,
    omise: OmiseGateway = Depends(get_omise_gateway),
):
    service = PayoutService(omise)
    try:
        return await service.create_recipient(data)
    except ValueError as e:
        raise _bad_request(e)
    except GatewayError as e:
        raise _gateway_failure(e)


@router.post("/create-payout", response_model=MessageResponse)
async def create_payout(
    data: PayoutRequest,
    omise: OmiseGateway = Depends(get_omise_gateway),
):
    """Pay an amount out to a bank account.

    Runs recipient creation, verification, transfer and settlement in one
    call. Objects created before a failure are deleted again.
    """
    service = PayoutService(omise)
    try:
        await service.create_payout(data)
    except ValueError as e:
        raise _bad_request(e)
    except GatewayError as e:
        raise _gateway_failure(e)
    return MessageResponse(message="Success")


# ==================== Stripe ====================

@router.post("/create-promptpay-charge-stripe", response_model=StripeQRChargeResponse)
async def create_promptpay_charge_stripe(
    data: StripeQRChargeRequest,
    stripe: StripeGateway = Depends(get_stripe_gateway),
):
    """Create and confirm a Stripe PromptPay PaymentIntent and return its QR."""
    service = ChargeService(stripe=stripe)
    try:
        intent = await service.create_stripe_promptpay_charge(data)
    except ValueError as e:
        raise _bad_request(e)
    except GatewayError as e:
        log_error(logger, f"Error creating Stripe PromptPay charge: {e.message}")
        raise _gateway_failure(e)
    return StripeQRChargeResponse(**intent)


# ==================== HitPay ====================

async def _hitpay_qr_charge(method: QRMethod, data: HitPayQRChargeRequest, hitpay: HitPayGateway):
    service = ChargeService(hitpay=hitpay)
    try:
        charge = await service.create_hitpay_qr_charge(method, data)
    except ValueError as e:
        raise _bad_request(e)
    except GatewayRequestError as e:
        raise HTTPException(
            status_code=e.status_code or status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message,
        )
    except GatewayError as e:
        raise _gateway_failure(e)
    return HitPayQRChargeResponse(**charge)


@router.post("/create-promptpay-charge-hitpay", response_model=HitPayQRChargeResponse)
async def create_promptpay_charge_hitpay(
    data: HitPayQRChargeRequest,
    hitpay: HitPayGateway = Depends(get_hitpay_gateway),
):
    """Create a HitPay PromptPay QR payment request (THB)."""
    return await _hitpay_qr_charge(PROMPTPAY, data, hitpay)


@router.post("/create-paynow-charge-hitpay", response_model=HitPayQRChargeResponse)
async def create_paynow_charge_hitpay(
    data: HitPayQRChargeRequest,
    hitpay: HitPayGateway = Depends(get_hitpay_gateway),
):
    """Create a HitPay PayNow QR payment request (SGD)."""
    return await _hitpay_qr_charge(PAYNOW, data, hitpay)


# ==================== Webhooks ====================

@router.post("/omise-webhook", response_class=PlainTextResponse)
async def omise_webhook(
    payload: dict,
    session: AsyncSession = Depends(get_session),
    omise: OmiseGateway = Depends(get_omise_gateway),
):
    """Handle an Omise event. Always acknowledged with ``OK``."""
    service = WebhookService(session, omise=omise)
    await service.handle_omise(payload)
    return "OK"


@router.post("/stripe-webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    session: AsyncSession = Depends(get_session),
    stripe: StripeGateway = Depends(get_stripe_gateway),
):
    """Handle a signed Stripe event."""
    raw_body = await request.body()
    service = WebhookService(session, stripe=stripe)
    try:
        await service.handle_stripe(raw_body, stripe_signature)
    except WebhookSignatureError as e:
        return PlainTextResponse(
            f"Webhook Error: {e.message}",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except GatewayError as e:
        raise _gateway_failure(e)
    return WebhookAck()


@router.post("/hitpay-webhook", response_class=PlainTextResponse)
async def hitpay_webhook(
    request: Request,
    hitpay_signature: Optional[str] = Header(None, alias="Hitpay-Signature"),
    session: AsyncSession = Depends(get_session),
    hitpay: HitPayGateway = Depends(get_hitpay_gateway),
):
    """Handle an HMAC-signed HitPay payment webhook."""
    raw_body = await request.body()
    service = WebhookService(session, hitpay=hitpay)
    try:
        outcome = await service.handle_hitpay(raw_body, hitpay_signature)
    except WebhookSignatureError as e:
        return PlainTextResponse(e.message, status_code=status.HTTP_400_BAD_REQUEST)

    if outcome == WebhookOutcome.STORE_FAILED:
        return "OK, but internal error occurred."
    return "OK"
