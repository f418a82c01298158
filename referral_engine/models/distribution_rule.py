"""
Distribution rule model.

Versioned payout configuration. At most one row is active at a time.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from referral_engine.config.business_constants import DECAY_FACTOR
from referral_engine.models.base import Base
from referral_engine.models.types import RateType


class DistributionRule(Base):
    """
    Distribution rule entity.

    Attributes:
        id: Primary key
        version: Monotonic rule version
        base_percentage: Level-1 rate as a fraction in [0, 1]
        decay_enabled: Halve the rate per level when True, else pay level 1 only
        is_active: Whether this rule governs new purchases
        created_at: Creation time
        updated_at: Last update time
    """

    __tablename__ = "distribution_rules"
    __table_args__ = (
        CheckConstraint(
            "base_percentage >= 0 AND base_percentage <= 1",
            name="base_percentage_fraction",
        ),
        Index(
            "uq_distribution_rules_single_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    version: Mapped[int] = mapped_column(
        Integer, unique=True, nullable=False
    )
    base_percentage: Mapped[Decimal] = mapped_column(
        RateType, nullable=False
    )
    decay_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def rate_for_level(self, level: int) -> Decimal:
        """
        Rate paid to the ancestor at a given level.

        Args:
            level: Ancestor level (1 = buyer's immediate parent)

        Returns:
            Rate as a fraction; zero for levels that earn nothing
        """
        if level < 1:
            return Decimal("0")
        if not self.decay_enabled:
            return self.base_percentage if level == 1 else Decimal("0")
        return self.base_percentage * DECAY_FACTOR ** (level - 1)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<DistributionRule(id={self.id}, version={self.version}, "
            f"base_percentage={self.base_percentage}, "
            f"decay_enabled={self.decay_enabled}, "
            f"is_active={self.is_active})>"
        )
