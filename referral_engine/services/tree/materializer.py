"""
Referral tree materializer.

Builds a bounded nested snapshot of the binary subtree under a member for
display.
"""

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.business_constants import PLACEMENT_SLOT_ORDER
from referral_engine.config.settings import settings
from referral_engine.models.enums import Position
from referral_engine.models.member import Member
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.services.base_service import BaseService
from referral_engine.utils.exceptions import NotFoundError, TreeIntegrityError
from referral_engine.validators import clamp_depth


@dataclass
class TreeNode:
    """One member in a materialized subtree."""

    id: int
    referral_code: str
    display_name: str
    position: Position | None
    level: int
    children: list["TreeNode"] = field(default_factory=list)

    def depth(self) -> int:
        """Levels present below this node."""
        if not self.children:
            return 0
        return 1 + max(child.depth() for child in self.children)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "referral_code": self.referral_code,
            "display_name": self.display_name,
            "position": self.position.value if self.position else None,
            "level": self.level,
            "children": [child.to_dict() for child in self.children],
        }


def _node(member: Member, level: int) -> TreeNode:
    return TreeNode(
        id=member.id,
        referral_code=member.referral_code,
        display_name=member.display_name,
        position=member.position,
        level=level,
    )


class ReferralTreeMaterializer(BaseService):
    """
    Read-only subtree snapshots.

    One query per level; children ordered left then right; empty slots are
    omitted rather than returned as placeholders.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize tree materializer."""
        super().__init__(session)
        self.member_repo = MemberRepository(session)

    async def build_tree(
        self,
        root_member_id: int,
        max_depth: int | None = None,
    ) -> TreeNode:
        """
        Materialize the subtree under a member.

        Args:
            root_member_id: Subtree root
            max_depth: Levels below the root to include; clamped to the
                configured range, default when None

        Returns:
            Root TreeNode at level 0

        Raises:
            NotFoundError: Root member does not exist
            TreeIntegrityError: A member was reached twice
        """
        depth = clamp_depth(
            max_depth,
            minimum=settings.tree_min_depth,
            maximum=settings.tree_max_depth,
            default=settings.tree_default_depth,
        )

        root_member = await self.member_repo.get_by_id(root_member_id)
        if root_member is None:
            raise NotFoundError("Member not found", member_id=root_member_id)

        root = _node(root_member, 0)
        frontier: list[TreeNode] = [root]
        seen: set[int] = {root.id}

        for level in range(1, depth + 1):
            if not frontier:
                break

            children = await self.member_repo.get_children(
                [node.id for node in frontier]
            )
            next_frontier: list[TreeNode] = []

            for node in frontier:
                slots = children.get(node.id, {})
                for position in PLACEMENT_SLOT_ORDER:
                    child = slots.get(Position(position))
                    if child is None:
                        continue
                    if child.id in seen:
                        raise TreeIntegrityError(
                            "Member reached twice in subtree",
                            root_member_id=root_member_id,
                            member_id=child.id,
                        )
                    seen.add(child.id)

                    child_node = _node(child, level)
                    node.children.append(child_node)
                    next_frontier.append(child_node)

            frontier = next_frontier

        self.logger.debug(
            "Referral tree built",
            extra={
                "root_member_id": root_member_id,
                "requested_depth": max_depth,
                "depth": depth,
                "nodes": len(seen),
            },
        )
        return root
