"""
Binary placement resolver.

Finds the shallowest, left-most open slot below a sponsor.
"""

from dataclasses import asdict, dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.business_constants import PLACEMENT_SLOT_ORDER
from referral_engine.config.settings import settings
from referral_engine.models.enums import Position
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.services.base_service import BaseService
from referral_engine.utils.exceptions import (
    InvalidInputError,
    NotFoundError,
    SearchExhaustedError,
    TreeIntegrityError,
)
from referral_engine.validators import normalize_referral_code


@dataclass(frozen=True)
class Placement:
    """Slot a new member must be written with."""

    parent_id: int
    position: Position
    sponsor_id: int
    depth: int  # 0 = directly under the sponsor

    def to_dict(self) -> dict:
        """Serializable representation."""
        data = asdict(self)
        data["position"] = self.position.value
        return data


class BinaryPlacementResolver(BaseService):
    """
    Breadth-first slot search below a sponsor.

    Levels are scanned shallow to deep; within a level nodes are scanned in
    BFS order and each node's left slot is checked before its right slot.
    One query is issued per tree level.

    The resolver only computes the slot. The registration flow performs the
    write, and the (parent_id, position) unique constraint rejects a slot
    handed out twice under contention.
    """

    def __init__(
        self,
        session: AsyncSession,
        max_depth: int | None = None,
        max_nodes: int | None = None,
    ) -> None:
        """
        Initialize resolver.

        Args:
            session: Async database session
            max_depth: BFS depth bound (defaults to settings)
            max_nodes: Visited-node bound (defaults to settings)
        """
        super().__init__(session)
        self.member_repo = MemberRepository(session)
        self.max_depth = max_depth or settings.placement_max_depth
        self.max_nodes = max_nodes or settings.placement_max_nodes

    async def resolve_sponsor(self, sponsor_referral_code: str) -> int:
        """
        Look up a sponsor by referral code.

        Args:
            sponsor_referral_code: Code typed by the registering member

        Returns:
            Sponsor member ID

        Raises:
            InvalidInputError: Code is blank or malformed
            NotFoundError: No member owns the code
        """
        is_valid, code, error = normalize_referral_code(sponsor_referral_code)
        if not is_valid or code is None:
            raise InvalidInputError(
                error or "Referral code is required",
                referral_code=sponsor_referral_code,
            )

        sponsor = await self.member_repo.get_by_referral_code(code)
        if sponsor is None:
            raise NotFoundError("Invalid referral code", referral_code=code)
        return sponsor.id

    async def place_by_code(self, sponsor_referral_code: str) -> Placement:
        """Resolve sponsor by referral code, then place."""
        sponsor_id = await self.resolve_sponsor(sponsor_referral_code)
        return await self.place(sponsor_id)

    async def place(self, sponsor_id: int) -> Placement:
        """
        Find the next open slot below a sponsor.

        Args:
            sponsor_id: Existing member acting as sponsor

        Returns:
            Placement for the new member

        Raises:
            NotFoundError: Sponsor does not exist
            SearchExhaustedError: Depth or node bound exceeded
            TreeIntegrityError: A member was reached twice (parent loop)
        """
        if await self.member_repo.get_by_id(sponsor_id) is None:
            raise NotFoundError("Sponsor not found", sponsor_id=sponsor_id)

        frontier = [sponsor_id]
        visited = {sponsor_id}
        depth = 0

        while frontier:
            occupied: dict[int, dict[Position, int]] = {
                parent_id: {} for parent_id in frontier
            }
            for parent_id, child_id, position in await self.member_repo.get_child_slots(frontier):
                occupied[parent_id][Position(position)] = child_id

            for parent_id in frontier:
                for position in PLACEMENT_SLOT_ORDER:
                    if Position(position) not in occupied[parent_id]:
                        placement = Placement(
                            parent_id=parent_id,
                            position=Position(position),
                            sponsor_id=sponsor_id,
                            depth=depth,
                        )
                        self.logger.debug(
                            "Placement found",
                            extra=placement.to_dict(),
                        )
                        return placement

            depth += 1
            if depth > self.max_depth:
                break

            next_frontier: list[int] = []
            for parent_id in frontier:
                for position in PLACEMENT_SLOT_ORDER:
                    child_id = occupied[parent_id][Position(position)]
                    if child_id in visited:
                        raise TreeIntegrityError(
                            "Member reached twice during placement search",
                            member_id=child_id,
                            sponsor_id=sponsor_id,
                        )
                    visited.add(child_id)
                    next_frontier.append(child_id)

            if len(visited) > self.max_nodes:
                break
            frontier = next_frontier

        self.logger.error(
            "Placement search exhausted",
            extra={
                "sponsor_id": sponsor_id,
                "depth": depth,
                "visited": len(visited),
                "max_depth": self.max_depth,
                "max_nodes": self.max_nodes,
            },
        )
        raise SearchExhaustedError(
            "Placement search exceeded its bound",
            sponsor_id=sponsor_id,
            depth=depth,
            visited=len(visited),
        )
