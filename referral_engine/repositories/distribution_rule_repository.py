"""
Distribution rule repository.

Data access layer for DistributionRule model.
"""

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.models.distribution_rule import DistributionRule
from referral_engine.repositories.base import BaseRepository


class DistributionRuleRepository(BaseRepository[DistributionRule]):
    """Distribution rule repository with activation helpers."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize distribution rule repository."""
        super().__init__(DistributionRule, session)

    async def get_active(self) -> DistributionRule | None:
        """
        Get the currently active rule.

        Newest wins if the single-active index was ever bypassed.

        Returns:
            Active rule or None
        """
        stmt = (
            select(DistributionRule)
            .where(DistributionRule.is_active == True)  # noqa: E712
            .order_by(DistributionRule.version.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_recent(self, limit: int = 10) -> list[DistributionRule]:
        """
        Get most recent rules, newest first.

        Args:
            limit: Max number of results

        Returns:
            List of rules
        """
        stmt = (
            select(DistributionRule)
            .order_by(DistributionRule.version.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def next_version(self) -> int:
        """
        Next rule version number.

        Returns:
            max(version) + 1, or 1 for the first rule
        """
        stmt = select(func.coalesce(func.max(DistributionRule.version), 0))
        result = await self.session.execute(stmt)
        return (result.scalar() or 0) + 1

    async def deactivate_all(self, except_id: int | None = None) -> int:
        """
        Deactivate every active rule.

        Args:
            except_id: Rule to leave untouched

        Returns:
            Number of rules deactivated
        """
        stmt = (
            update(DistributionRule)
            .where(DistributionRule.is_active == True)  # noqa: E712
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        if except_id is not None:
            stmt = stmt.where(DistributionRule.id != except_id)

        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount or 0
