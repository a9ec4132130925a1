"""Application configuration settings.

All configuration values are loaded from environment variables (.env file).
No sensitive values should be hardcoded here.
"""

from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    PROJECT_NAME: str = "Payment Gateway Shim"
    VERSION: str = "0.1.0"
    # Empty by default so processors keep posting to the root webhook paths
    API_PREFIX: str = ""
    DEBUG: bool = False
    LOG_JSON: bool = True

    # Database - REQUIRED
    DATABASE_URL: str
    DB_CREATE_TABLES: bool = False

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Tracing
    OTLP_ENDPOINT: Optional[str] = None

    # Omise (card / QR processor)
    OMISE_SECRET_KEY: str = ""
    OMISE_API_URL: str = "https://api.omise.co"

    # Stripe (card-network processor)
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""

    # HitPay (regional QR processor)
    HITPAY_API_URL: str = "https://api.hit-pay.com/v1/payment-requests"
    HITPAY_API_KEY: str = ""
    HITPAY_WEBHOOK_SALT: str = ""

    # Outbound HTTP
    GATEWAY_TIMEOUT_SECONDS: float = 30.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
