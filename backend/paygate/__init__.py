"""Payment Gateway Aggregation Backend.

Forwards client payment requests to Omise, Stripe and HitPay, normalizes
their responses, verifies inbound webhooks and records successful
transactions.

Modules:
    - core: Configuration, database, logging, tracing, metrics
    - modules.payment_gateway: Gateway clients, charge/payout/webhook services
"""

__version__ = "0.1.0"
