"""
Purchase model.

One buying event by a member against a cataloged item.
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
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_engine.models.base import Base
from referral_engine.models.types import MoneyType

if TYPE_CHECKING:
    from referral_engine.models.income import Income
    from referral_engine.models.member import Member


class Purchase(Base):
    """
    Purchase entity.

    Inserted with a zero BV placeholder and patched with the captured BV
    in the same transaction that writes its income rows.

    Attributes:
        id: Primary key
        buyer_id: Member who bought
        item_id: Catalog item reference (owned by the host catalog)
        bv: Business Volume captured at purchase time
        distributed_at: Set when the income ledger was written
        created_at: Purchase time
    """

    __tablename__ = "purchases"
    __table_args__ = (
        CheckConstraint("bv >= 0", name="bv_non_negative"),
        Index("idx_purchases_buyer_created", "buyer_id", "created_at"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    buyer_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)

    bv: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    distributed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    buyer: Mapped["Member"] = relationship(
        "Member", back_populates="purchases", lazy="raise"
    )
    incomes: Mapped[list["Income"]] = relationship(
        "Income", back_populates="purchase", lazy="raise"
    )

    @property
    def is_distributed(self) -> bool:
        """Whether the income ledger for this purchase has been written."""
        return self.distributed_at is not None

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Purchase(id={self.id}, buyer_id={self.buyer_id}, "
            f"item_id={self.item_id}, bv={self.bv})>"
        )
