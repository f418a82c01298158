"""
Income repository.

Data access layer for the immutable income ledger.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.models.income import Income
from referral_engine.models.member import Member
from referral_engine.repositories.base import BaseRepository


class IncomeRepository(BaseRepository[Income]):
    """Income repository with ledger queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize income repository."""
        super().__init__(Income, session)

    async def exists_for_purchase(self, purchase_id: int) -> bool:
        """
        Check if any income row was written for a purchase.

        Args:
            purchase_id: Purchase ID

        Returns:
            True if the purchase already has ledger rows
        """
        return await self.exists(purchase_id=purchase_id)

    async def get_by_purchase(self, purchase_id: int) -> list[Income]:
        """
        Get all income rows of a purchase ordered by level.

        Args:
            purchase_id: Purchase ID

        Returns:
            List of incomes
        """
        stmt = (
            select(Income)
            .where(Income.purchase_id == purchase_id)
            .order_by(Income.level)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_member(
        self, member_id: int, limit: int = 100
    ) -> list[tuple[Income, str]]:
        """
        Get member's incomes with the buyer's referral code, newest first.

        Args:
            member_id: Beneficiary member ID
            limit: Max number of results

        Returns:
            List of (income, from_referral_code)
        """
        stmt = (
            select(Income, Member.referral_code)
            .join(Member, Member.id == Income.from_member_id)
            .where(Income.to_member_id == member_id)
            .order_by(Income.created_at.desc(), Income.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def get_level_totals(
        self, member_id: int
    ) -> dict[int, dict[str, int | Decimal]]:
        """
        Get member's earnings grouped by level in a single query.

        Args:
            member_id: Beneficiary member ID

        Returns:
            Dict mapping level to {"count": n, "total_earned": amount}
        """
        stmt = (
            select(
                Income.level,
                func.count(Income.id).label("count"),
                func.coalesce(
                    func.sum(Income.amount), Decimal("0")
                ).label("total_earned"),
            )
            .where(Income.to_member_id == member_id)
            .group_by(Income.level)
            .order_by(Income.level)
        )
        result = await self.session.execute(stmt)

        return {
            row.level: {
                "count": row.count,
                "total_earned": Decimal(str(row.total_earned)),
            }
            for row in result.all()
        }
