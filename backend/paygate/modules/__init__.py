"""Application modules.

- payment_gateway: Omise, Stripe and HitPay charges, payouts and webhooks
"""
