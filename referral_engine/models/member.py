"""
Member model.

A node in the shared binary referral tree.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_engine.models.base import Base
from referral_engine.models.enums import Position

if TYPE_CHECKING:
    from referral_engine.models.purchase import Purchase


class Member(Base):
    """
    Member entity.

    Tree links are written once at registration and never reassigned:
    - root members have neither parent nor position
    - every other member occupies exactly one slot under its parent
    - a parent holds at most one left and one right child

    Attributes:
        id: Primary key
        referral_code: Code other members register under
        display_name: Label shown in tree views
        parent_id: Binary-tree parent (None for roots)
        position: Slot under parent (None for roots)
        created_at: Registration time
    """

    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint(
            "parent_id", "position", name="uq_members_parent_position"
        ),
        CheckConstraint(
            "(parent_id IS NULL AND position IS NULL) OR "
            "(parent_id IS NOT NULL AND position IS NOT NULL)",
            name="parent_position_together",
        ),
        CheckConstraint(
            "parent_id IS NULL OR parent_id <> id",
            name="not_own_parent",
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    referral_code: Mapped[str] = mapped_column(
        String(20), nullable=False, unique=True, index=True
    )
    display_name: Mapped[str] = mapped_column(
        String(255), nullable=False, default=""
    )

    # Binary tree links
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    position: Mapped[Position | None] = mapped_column(
        Enum(
            Position,
            name="member_position",
            values_callable=lambda e: [p.value for p in e],
            native_enum=False,
            length=8,
        ),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    parent: Mapped["Member | None"] = relationship(
        "Member", remote_side="Member.id", lazy="raise"
    )
    purchases: Mapped[list["Purchase"]] = relationship(
        "Purchase", back_populates="buyer", lazy="raise"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Member(id={self.id}, "
            f"referral_code={self.referral_code}, "
            f"parent_id={self.parent_id}, "
            f"position={self.position})>"
        )
