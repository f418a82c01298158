"""
Income model.

One ledger credit to one ancestor for one purchase. Immutable once written.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_engine.models.base import Base
from referral_engine.models.types import MoneyType, RateType

if TYPE_CHECKING:
    from referral_engine.models.member import Member
    from referral_engine.models.purchase import Purchase


class Income(Base):
    """
    Income entity.

    Attributes:
        id: Primary key
        to_member_id: Beneficiary ancestor
        from_member_id: Buyer whose purchase generated the credit
        purchase_id: Originating purchase
        level: Ancestor distance from buyer (1 = immediate parent)
        bv: BV basis
        rate: Rate applied at this level
        amount: Credited amount (bv * rate)
        created_at: Ledger time
    """

    __tablename__ = "incomes"
    __table_args__ = (
        UniqueConstraint(
            "purchase_id", "to_member_id", name="uq_incomes_purchase_beneficiary"
        ),
        CheckConstraint("level >= 1", name="level_positive"),
        CheckConstraint("amount >= 0", name="amount_non_negative"),
        Index("idx_incomes_to_member_created", "to_member_id", "created_at"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    to_member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"), nullable=False
    )
    from_member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"), nullable=False
    )
    purchase_id: Mapped[int] = mapped_column(
        ForeignKey("purchases.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    level: Mapped[int] = mapped_column(Integer, nullable=False)
    bv: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    purchase: Mapped["Purchase"] = relationship(
        "Purchase", back_populates="incomes", lazy="raise"
    )
    from_member: Mapped["Member"] = relationship(
        "Member", foreign_keys=[from_member_id], lazy="raise"
    )
    to_member: Mapped["Member"] = relationship(
        "Member", foreign_keys=[to_member_id], lazy="raise"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Income(id={self.id}, purchase_id={self.purchase_id}, "
            f"to_member_id={self.to_member_id}, level={self.level}, "
            f"amount={self.amount})>"
        )
