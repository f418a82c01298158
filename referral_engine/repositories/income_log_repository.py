"""
Income log repository.

Data access layer for IncomeLog model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.models.income_log import IncomeLog
from referral_engine.repositories.base import BaseRepository


class IncomeLogRepository(BaseRepository[IncomeLog]):
    """Income log repository with reporting queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize income log repository."""
        super().__init__(IncomeLog, session)

    async def get_by_purchase(self, purchase_id: int) -> IncomeLog | None:
        """Get the aggregate log row of a purchase."""
        return await self.get_by(purchase_id=purchase_id)

    async def get_total_income(self) -> Decimal:
        """
        Sum distributed income over all runs.

        Returns:
            Total income distributed
        """
        stmt = select(
            func.coalesce(func.sum(IncomeLog.income_amount), Decimal("0"))
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))
