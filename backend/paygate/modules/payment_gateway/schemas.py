"""Pydantic schemas for the payment gateway endpoints.

Field aliases keep the camelCase JSON names client applications send.
Required fields are declared optional here on purpose: presence and
positivity are checked by the services so the error text stays specific.
"""

from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import BaseModel, Field


OpaqueId = Optional[Union[str, int]]


class RequestModel(BaseModel):
    """Base for request bodies (accepts alias or field name)."""

    class Config:
        populate_by_name = True


class ResponseModel(BaseModel):
    """Base for response bodies (serialized by alias)."""

    class Config:
        populate_by_name = True


# ==================== Charge Schemas ====================

class OmiseQRChargeRequest(RequestModel):
    """Request to create an Omise PromptPay / PayNow charge."""
    amount: Optional[int] = Field(None, description="Amount in the smallest currency unit")
    user_id: OpaqueId = Field(None, alias="payniUserId")
    currency_id: OpaqueId = Field(None, alias="currencyId")


class OmiseCardChargeRequest(RequestModel):
    """Request to charge a card stored on an Omise customer."""
    amount: Optional[int] = Field(None, description="Amount in satang")
    user_id: OpaqueId = Field(None, alias="payniUserId")
    currency_id: OpaqueId = Field(None, alias="currencyId")
    customer_id: Optional[str] = Field(None, alias="omiseCustomerId")
    card_id: Optional[str] = Field(None, alias="cardId")


class ChargePaidRequest(RequestModel):
    """Request to mark an Omise charge as paid."""
    charge_id: Optional[str] = Field(None, alias="chargeId")


class StripeQRChargeRequest(RequestModel):
    """Request to create a Stripe PromptPay payment."""
    amount: Optional[int] = Field(None, description="Amount in satang")
    user_id: OpaqueId = Field(None, alias="payniUserId")
    currency_id: OpaqueId = Field(None, alias="currencyId")
    email: Optional[str] = None


class StripeQRChargeResponse(ResponseModel):
    """QR details of a confirmed Stripe PromptPay PaymentIntent."""
    id: str
    qr_data_svg: Optional[str] = Field(None, alias="qrDataSvg")
    qr_data_png: Optional[str] = Field(None, alias="qrDataPng")
    data: Optional[str] = None
    hosted_instructions_url: Optional[str] = Field(None, alias="hostedInstructionsUrl")
    amount: Optional[int] = None


class HitPayQRChargeRequest(RequestModel):
    """Request to create a HitPay PromptPay / PayNow payment request."""
    amount: Optional[Decimal] = Field(None, description="Amount in the base currency unit")
    user_id: OpaqueId = Field(None, alias="payniUserId")
    currency_id: OpaqueId = Field(None, alias="currencyId")


class HitPayQRChargeResponse(ResponseModel):
    """Subset of the HitPay payment request returned to the client."""
    id: Optional[str] = None
    qr_code_data: Optional[Any] = Field(None, alias="qrCodeData")
    status: Optional[str] = None
    amount: Optional[Union[str, float]] = None


# ==================== Customer Schemas ====================

class CustomerCreateRequest(RequestModel):
    email: Optional[str] = None


class CustomerLookupResponse(ResponseModel):
    message: str
    email: str
    customer_id: str = Field(..., alias="customerId")


class AddCardRequest(RequestModel):
    """Request to attach a tokenized card to an Omise customer."""
    customer_id: Optional[str] = Field(None, alias="omiseCustomerId")
    card_token: Optional[str] = Field(None, alias="cardToken")


# ==================== Payout Schemas ====================

class BankAccount(RequestModel):
    brand: Optional[str] = None
    number: Optional[str] = None
    name: Optional[str] = None


class RecipientRequest(RequestModel):
    """Request to create an Omise payout recipient."""
    name: Optional[str] = None
    bank_account: Optional[BankAccount] = Field(None, alias="bankAccount")


class PayoutRequest(RecipientRequest):
    """Request to pay out to a bank account in one go."""
    amount: Optional[int] = Field(None, description="Amount in satang")


class MessageResponse(BaseModel):
    message: str


# ==================== Webhook Schemas ====================

class WebhookAck(BaseModel):
    received: bool = True
