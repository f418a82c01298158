"""
Member repository.

Data access layer for the binary tree stored in the members table.
"""

from sqlalchemy import Integer, func, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from referral_engine.models.enums import Position
from referral_engine.models.member import Member
from referral_engine.repositories.base import BaseRepository


# Parent IDs per IN (...) clause; keeps wide BFS levels under driver
# bind-parameter limits
IN_CLAUSE_CHUNK = 500


def _chunks(ids: list[int]) -> list[list[int]]:
    return [ids[i:i + IN_CLAUSE_CHUNK] for i in range(0, len(ids), IN_CLAUSE_CHUNK)]


class MemberRepository(BaseRepository[Member]):
    """Member repository with tree-walking queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize member repository."""
        super().__init__(Member, session)

    async def get_by_referral_code(
        self, referral_code: str
    ) -> Member | None:
        """
        Get member by referral code.

        Args:
            referral_code: Code shared by the member

        Returns:
            Member or None
        """
        return await self.get_by(referral_code=referral_code)

    async def get_children(
        self, parent_ids: list[int]
    ) -> dict[int, dict[Position, Member]]:
        """
        Get the children of several parents in one query.

        Args:
            parent_ids: Parent member IDs

        Returns:
            Dict mapping parent ID to {position: child}; parents without
            children are present with an empty dict
        """
        children: dict[int, dict[Position, Member]] = {
            parent_id: {} for parent_id in parent_ids
        }
        if not parent_ids:
            return children

        for chunk in _chunks(parent_ids):
            stmt = select(Member).where(Member.parent_id.in_(chunk))
            result = await self.session.execute(stmt)

            for child in result.scalars().all():
                children[child.parent_id][child.position] = child

        return children

    async def get_child_slots(
        self, parent_ids: list[int]
    ) -> list[tuple[int, int, Position]]:
        """
        Get (parent_id, child_id, position) rows for several parents.

        Lighter than get_children: no entity loading, used by placement search.

        Args:
            parent_ids: Parent member IDs

        Returns:
            List of (parent_id, child_id, position)
        """
        if not parent_ids:
            return []

        rows: list[tuple[int, int, Position]] = []
        for chunk in _chunks(parent_ids):
            stmt = select(Member.parent_id, Member.id, Member.position).where(
                Member.parent_id.in_(chunk)
            )
            result = await self.session.execute(stmt)
            rows.extend(
                (row.parent_id, row.id, row.position) for row in result.all()
            )
        return rows

    async def slot_taken(self, parent_id: int, position: Position) -> bool:
        """
        Check if a slot under parent is occupied.

        Args:
            parent_id: Parent member ID
            position: Slot to check

        Returns:
            True if a member already occupies the slot
        """
        return await self.exists(parent_id=parent_id, position=position)

    async def get_ancestor_chain(
        self, member_id: int, max_level: int
    ) -> list[tuple[int, int]]:
        """
        Get ancestors from immediate parent upwards (recursive CTE).

        The walk is bounded by max_level so a corrupted parent loop cannot
        recurse forever; callers detect loops by repeated IDs.

        Args:
            member_id: Member whose ancestors are walked
            max_level: Maximum number of hops

        Returns:
            List of (ancestor_id, level) ordered by level ascending
        """
        parent_ref = aliased(Member)

        chain = (
            select(
                Member.parent_id.label("ancestor_id"),
                literal_column("1", Integer).label("level"),
            )
            .where(Member.id == member_id, Member.parent_id.is_not(None))
            .cte(name="ancestor_chain", recursive=True)
        )
        chain = chain.union_all(
            select(
                parent_ref.parent_id.label("ancestor_id"),
                (chain.c.level + 1).label("level"),
            ).where(
                parent_ref.id == chain.c.ancestor_id,
                parent_ref.parent_id.is_not(None),
                chain.c.level < max_level,
            )
        )

        stmt = select(chain.c.ancestor_id, chain.c.level).order_by(chain.c.level)
        result = await self.session.execute(stmt)
        return [(row.ancestor_id, row.level) for row in result.all()]

    async def get_slot_counts(self) -> list[tuple[int, Position, int]]:
        """
        Count children per (parent, position).

        Returns:
            List of (parent_id, position, count) for occupied slots
        """
        stmt = (
            select(
                Member.parent_id,
                Member.position,
                func.count(Member.id).label("count"),
            )
            .where(Member.parent_id.is_not(None))
            .group_by(Member.parent_id, Member.position)
        )
        result = await self.session.execute(stmt)
        return [(row.parent_id, row.position, row.count) for row in result.all()]

    async def get_link_map(self) -> dict[int, tuple[int | None, Position | None]]:
        """
        Load every member's (parent_id, position) link.

        Used by the integrity audit only.

        Returns:
            Dict mapping member ID to (parent_id, position)
        """
        stmt = select(Member.id, Member.parent_id, Member.position)
        result = await self.session.execute(stmt)
        return {row.id: (row.parent_id, row.position) for row in result.all()}
