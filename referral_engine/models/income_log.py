"""
IncomeLog model.

Aggregate audit row for one distribution run, used for reporting totals.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from referral_engine.models.base import Base
from referral_engine.models.types import MoneyType


class IncomeLog(Base):
    """
    IncomeLog entity.

    Attributes:
        id: Primary key
        purchase_id: Distributed purchase (one log row per purchase)
        buyer_id: Buyer
        rule_id: Distribution rule applied (None when no rule was active)
        bv: BV distributed
        income_amount: Sum of all income rows written for the purchase
        levels_paid: Number of ancestors credited
        created_at: Log time
    """

    __tablename__ = "income_logs"

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    purchase_id: Mapped[int] = mapped_column(
        ForeignKey("purchases.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    buyer_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    rule_id: Mapped[int | None] = mapped_column(
        ForeignKey("distribution_rules.id", ondelete="SET NULL"),
        nullable=True,
    )

    bv: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    income_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    levels_paid: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<IncomeLog(purchase_id={self.purchase_id}, "
            f"income_amount={self.income_amount}, "
            f"levels_paid={self.levels_paid})>"
        )
