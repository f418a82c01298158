"""
Tree integrity audit.

Reports structural violations the schema constraints are meant to prevent;
used by operators after manual data repair or migrations.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.services.base_service import BaseService


class TreeAuditService(BaseService):
    """Scans the whole member table for binary-tree violations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize audit service."""
        super().__init__(session)
        self.member_repo = MemberRepository(session)

    async def find_integrity_violations(self) -> list[str]:
        """
        Find tree integrity violations.

        Checks:
            - more than one child in a parent's left or right slot
            - parent set without position, or position without parent
            - parent references to missing members
            - parent chains that loop back on themselves

        Returns:
            List of human-readable issues, empty when the tree is sound
        """
        issues: list[str] = []

        for parent_id, position, count in await self.member_repo.get_slot_counts():
            if count > 1:
                issues.append(
                    f"Parent {parent_id} has {count} children in slot {position}"
                )

        links = await self.member_repo.get_link_map()

        for member_id, (parent_id, position) in sorted(links.items()):
            if (parent_id is None) != (position is None):
                issues.append(
                    f"Member {member_id} has inconsistent link "
                    f"(parent={parent_id}, position={position})"
                )
            if parent_id is not None and parent_id not in links:
                issues.append(
                    f"Member {member_id} references missing parent {parent_id}"
                )

        issues.extend(self._find_cycles(links))

        if issues:
            self.logger.warning(
                "Tree integrity violations found",
                extra={"count": len(issues)},
            )
        else:
            self.logger.info("Tree integrity check passed", extra={"members": len(links)})

        return issues

    @staticmethod
    def _find_cycles(links: dict) -> list[str]:
        """Walk each parent chain once; report every loop found."""
        issues: list[str] = []
        # 0 = unvisited, 1 = on current path, 2 = done
        state: dict[int, int] = {}

        for start in sorted(links):
            if state.get(start):
                continue

            path: list[int] = []
            current = start
            while current is not None and current in links and not state.get(current):
                state[current] = 1
                path.append(current)
                current = links[current][0]

            if current is not None and state.get(current) == 1:
                loop = path[path.index(current):]
                issues.append(
                    "Parent chain loops: " + " -> ".join(str(m) for m in loop)
                )

            for member_id in path:
                state[member_id] = 2

        return issues
