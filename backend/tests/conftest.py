"""Shared test configuration.

Settings are read at import time, so the environment is prepared before
any ``paygate`` module is imported.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("OMISE_SECRET_KEY", "skey_test_omise")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_stripe")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("HITPAY_API_KEY", "hitpay_test_key")
os.environ.setdefault("HITPAY_WEBHOOK_SALT", "hitpay_test_salt")
