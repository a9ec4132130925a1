"""Payment Gateway Module.

Charges, customers, payouts and webhooks for Omise, Stripe and HitPay.
"""

from paygate.modules.payment_gateway.models import (
    Transaction,
    GatewayProvider,
)
from paygate.modules.payment_gateway.interface import (
    PaymentGatewayInterface,
    GatewayError,
    GatewayConfigurationError,
    GatewayRequestError,
    WebhookSignatureError,
    WebhookResult,
)
from paygate.modules.payment_gateway.methods import QRMethod, PROMPTPAY, PAYNOW
from paygate.modules.payment_gateway.repository import TransactionRepository
from paygate.modules.payment_gateway.service import (
    PaymentGatewayFactory,
    ChargeService,
    CustomerService,
    PayoutService,
    WebhookService,
    WebhookOutcome,
)
from paygate.modules.payment_gateway.gateways import (
    OmiseGateway,
    StripeGateway,
    HitPayGateway,
)

__all__ = [
    # Models
    "Transaction",
    "GatewayProvider",
    # Interface
    "PaymentGatewayInterface",
    "GatewayError",
    "GatewayConfigurationError",
    "GatewayRequestError",
    "WebhookSignatureError",
    "WebhookResult",
    # Methods
    "QRMethod",
    "PROMPTPAY",
    "PAYNOW",
    # Repositories
    "TransactionRepository",
    # Services
    "PaymentGatewayFactory",
    "ChargeService",
    "CustomerService",
    "PayoutService",
    "WebhookService",
    "WebhookOutcome",
    # Gateways
    "OmiseGateway",
    "StripeGateway",
    "HitPayGateway",
]
