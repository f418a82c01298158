"""
Purchase repository.

Data access layer for Purchase model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.models.purchase import Purchase
from referral_engine.repositories.base import BaseRepository


class PurchaseRepository(BaseRepository[Purchase]):
    """Purchase repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize purchase repository."""
        super().__init__(Purchase, session)

    async def get_by_buyer(
        self, buyer_id: int, limit: int = 50
    ) -> list[Purchase]:
        """
        Get buyer's purchases, newest first.

        Args:
            buyer_id: Buyer member ID
            limit: Max number of results

        Returns:
            List of purchases
        """
        stmt = (
            select(Purchase)
            .where(Purchase.buyer_id == buyer_id)
            .order_by(Purchase.created_at.desc(), Purchase.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_total_bv(self) -> Decimal:
        """
        Sum BV over all purchases.

        Returns:
            Total BV generated
        """
        stmt = select(func.coalesce(func.sum(Purchase.bv), Decimal("0")))
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))
