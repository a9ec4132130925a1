"""Repository for transaction records."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paygate.modules.payment_gateway.models import Transaction


class TransactionRepository:
    """Repository for transaction record operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_transaction_id(self, transaction_id: str) -> Optional[Transaction]:
        """Get a recorded transaction by processor transaction ID."""
        result = await self.session.execute(
            select(Transaction)
            .where(Transaction.transaction_id == transaction_id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def record(
        self,
        amount: float,
        transaction_id: str,
        user_id: Optional[str],
        currency_id: Optional[str],
        is_found: bool = False,
    ) -> Transaction:
        """Insert a transaction record.

        Args:
            amount: Amount in the base currency unit
            transaction_id: Processor transaction ID
            user_id: Opaque client user identifier
            currency_id: Opaque client currency identifier
            is_found: Initial value of the found flag

        Returns:
            The flushed Transaction
        """
        transaction = Transaction(
            amount=amount,
            transaction_id=transaction_id,
            user_id=user_id,
            currency_id=currency_id,
            is_found=is_found,
        )
        self.session.add(transaction)
        await self.session.flush()
        return transaction
