"""Payment Gateway models.

Implements the Transaction record written for every verified payment event.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from paygate.core.database import Base


class GatewayProvider(str, Enum):
    """Supported payment gateway providers."""
    OMISE = "omise"
    STRIPE = "stripe"
    HITPAY = "hitpay"


class Transaction(Base):
    """A successfully verified payment.

    Column names match the existing ``transactions`` table consumed by the
    client application.
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Amount in the base currency unit (123.45, not 12345)
    amount: Mapped[float] = mapped_column(Float, nullable=False)

    # Processor charge / payment intent / payment request ID
    transaction_id: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )

    # Opaque identifiers supplied by the client at charge time
    user_id: Mapped[Optional[str]] = mapped_column(
        "payni_user_id", String(255), nullable=True, index=True
    )
    currency_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    is_found: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Transaction(transaction_id={self.transaction_id}, amount={self.amount})>"
