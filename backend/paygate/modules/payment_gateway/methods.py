"""QR payment methods and the processor parameters each one maps to."""

from dataclasses import dataclass


@dataclass(frozen=True)
class QRMethod:
    """A QR payment scheme as understood by each processor.

    Omise takes amounts in the smallest currency unit; HitPay takes them in
    the base unit (123.00 THB, not 12300 satang).
    """
    name: str
    omise_currency: str
    omise_source_type: str
    hitpay_currency: str
    hitpay_payment_method: str


PROMPTPAY = QRMethod(
    name="PromptPay",
    omise_currency="thb",
    omise_source_type="promptpay",
    hitpay_currency="THB",
    hitpay_payment_method="opn_prompt_pay",
)

PAYNOW = QRMethod(
    name="PayNow",
    omise_currency="sgd",
    omise_source_type="paynow_qr",
    hitpay_currency="sgd",
    hitpay_payment_method="paynow_online",
)

# Card charges and payouts always settle in baht
CARD_CURRENCY = "thb"
PAYOUT_CURRENCY = "thb"

STRIPE_PROMPTPAY_CURRENCY = "thb"
