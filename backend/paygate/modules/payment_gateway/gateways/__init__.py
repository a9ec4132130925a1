"""Payment gateway implementations.

Contains clients for Omise, Stripe, and HitPay.
"""

from .omise import OmiseGateway
from .stripe import StripeGateway
from .hitpay import HitPayGateway

__all__ = ["OmiseGateway", "StripeGateway", "HitPayGateway"]
