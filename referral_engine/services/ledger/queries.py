"""
Ledger queries.

Read-only views over purchases and the income ledger for member pages and
the admin dashboard.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.business_constants import (
    DEFAULT_INCOME_PAGE_SIZE,
    DEFAULT_PURCHASE_PAGE_SIZE,
)
from referral_engine.repositories.income_log_repository import (
    IncomeLogRepository,
)
from referral_engine.repositories.income_repository import IncomeRepository
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.repositories.purchase_repository import PurchaseRepository
from referral_engine.services.base_service import BaseService
from referral_engine.utils.exceptions import NotFoundError


@dataclass(frozen=True)
class IncomeEntry:
    """One ledger row as seen by its beneficiary."""

    id: int
    purchase_id: int
    from_member_id: int
    from_referral_code: str
    level: int
    bv: Decimal
    rate: Decimal
    amount: Decimal
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "from_member_id": self.from_member_id,
            "from_referral_code": self.from_referral_code,
            "level": self.level,
            "bv": str(self.bv),
            "rate": str(self.rate),
            "amount": str(self.amount),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class PurchaseEntry:
    id: int
    item_id: str
    bv: Decimal
    distributed_at: datetime | None
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "bv": str(self.bv),
            "distributed_at": (
                self.distributed_at.isoformat() if self.distributed_at else None
            ),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class MemberEarnings:
    """Lifetime earnings of a member with per-level breakdown."""

    member_id: int
    total_earned: Decimal
    income_count: int
    by_level: dict[int, dict] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "member_id": self.member_id,
            "total_earned": str(self.total_earned),
            "income_count": self.income_count,
            "by_level": {
                level: {
                    "count": stats["count"],
                    "total_earned": str(stats["total_earned"]),
                }
                for level, stats in self.by_level.items()
            },
        }


@dataclass(frozen=True)
class DashboardTotals:
    total_members: int
    total_bv_generated: Decimal
    total_income_distributed: Decimal

    def to_dict(self) -> dict:
        return {
            "total_members": self.total_members,
            "total_bv_generated": str(self.total_bv_generated),
            "total_income_distributed": str(self.total_income_distributed),
        }


class LedgerQueryService(BaseService):
    """Reporting over the purchase and income tables."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize ledger query service."""
        super().__init__(session)
        self.member_repo = MemberRepository(session)
        self.purchase_repo = PurchaseRepository(session)
        self.income_repo = IncomeRepository(session)
        self.income_log_repo = IncomeLogRepository(session)

    async def _require_member(self, member_id: int) -> None:
        if not await self.member_repo.exists(id=member_id):
            raise NotFoundError("Member not found", member_id=member_id)

    async def list_member_incomes(
        self, member_id: int, limit: int = DEFAULT_INCOME_PAGE_SIZE
    ) -> list[IncomeEntry]:
        """
        Get a member's latest incomes.

        Args:
            member_id: Beneficiary member ID
            limit: Max number of rows

        Returns:
            Incomes newest first, each with the buyer's referral code

        Raises:
            NotFoundError: Member does not exist
        """
        await self._require_member(member_id)
        rows = await self.income_repo.get_for_member(member_id, limit=limit)

        return [
            IncomeEntry(
                id=income.id,
                purchase_id=income.purchase_id,
                from_member_id=income.from_member_id,
                from_referral_code=from_code,
                level=income.level,
                bv=income.bv,
                rate=income.rate,
                amount=income.amount,
                created_at=income.created_at,
            )
            for income, from_code in rows
        ]

    async def list_member_purchases(
        self, member_id: int, limit: int = DEFAULT_PURCHASE_PAGE_SIZE
    ) -> list[PurchaseEntry]:
        """Get a member's latest purchases, newest first."""
        await self._require_member(member_id)
        purchases = await self.purchase_repo.get_by_buyer(member_id, limit=limit)

        return [
            PurchaseEntry(
                id=p.id,
                item_id=p.item_id,
                bv=p.bv,
                distributed_at=p.distributed_at,
                created_at=p.created_at,
            )
            for p in purchases
        ]

    async def get_member_earnings(self, member_id: int) -> MemberEarnings:
        """
        Get a member's lifetime earnings.

        Args:
            member_id: Beneficiary member ID

        Returns:
            MemberEarnings with totals per level

        Raises:
            NotFoundError: Member does not exist
        """
        await self._require_member(member_id)
        by_level = await self.income_repo.get_level_totals(member_id)

        return MemberEarnings(
            member_id=member_id,
            total_earned=sum(
                (stats["total_earned"] for stats in by_level.values()),
                Decimal("0"),
            ),
            income_count=sum(stats["count"] for stats in by_level.values()),
            by_level=by_level,
        )

    async def get_dashboard_totals(self) -> DashboardTotals:
        """Get system-wide totals for the admin dashboard."""
        return DashboardTotals(
            total_members=await self.member_repo.count(),
            total_bv_generated=await self.purchase_repo.get_total_bv(),
            total_income_distributed=await self.income_log_repo.get_total_income(),
        )
