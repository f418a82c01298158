"""
Compensation engine facade.

The narrow surface a host application calls: placement, registration,
purchase distribution, tree views and active-rule administration. Results
are dataclasses with ``to_dict()`` so the host can adapt them to its own
wire format.
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.models.distribution_rule import DistributionRule
from referral_engine.services.base_service import BaseService, log_operation
from referral_engine.services.distribution import (
    BVDistributionEngine,
    DistributionResult,
    DistributionRuleService,
)
from referral_engine.services.ledger import LedgerQueryService
from referral_engine.services.placement import (
    BinaryPlacementResolver,
    MemberRegistrationService,
    Placement,
    RegistrationResult,
)
from referral_engine.services.tree import (
    ReferralTreeMaterializer,
    TreeAuditService,
    TreeNode,
)
from referral_engine.utils.exceptions import InvalidInputError


class CompensationEngine(BaseService):
    """Entry point bundling every engine service over one session."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize engine facade.

        Args:
            session: Async database session shared by all services
        """
        super().__init__(session)
        self.resolver = BinaryPlacementResolver(session)
        self.registration = MemberRegistrationService(session, resolver=self.resolver)
        self.distribution = BVDistributionEngine(session)
        self.rules = DistributionRuleService(session)
        self.trees = ReferralTreeMaterializer(session)
        self.audit = TreeAuditService(session)
        self.ledger = LedgerQueryService(session)

    @log_operation
    async def resolve_placement(self, sponsor_referral_code: str) -> Placement:
        """
        Compute where a new member under this sponsor would go.

        Read only; registration re-runs the search when it writes.
        """
        return await self.resolver.place_by_code(sponsor_referral_code)

    @log_operation
    async def register_member(
        self,
        sponsor_referral_code: str | None = None,
        display_name: str = "",
    ) -> RegistrationResult:
        return await self.registration.register_member(
            sponsor_referral_code=sponsor_referral_code,
            display_name=display_name,
        )

    @log_operation
    async def distribute_purchase(
        self,
        buyer_id: int,
        item_id: str | int,
        captured_bv: object,
        timeout: float | None = None,
    ) -> DistributionResult:
        """
        Record a confirmed purchase and pay its BV up the tree.

        Args:
            buyer_id: Buying member
            item_id: Catalog item reference
            captured_bv: BV of the item at purchase time
            timeout: Seconds before the whole transaction is abandoned

        Returns:
            DistributionResult

        Raises:
            TimeoutError: Timeout elapsed; nothing was committed
        """
        async with asyncio.timeout(timeout):
            return await self.distribution.distribute_purchase(
                buyer_id=buyer_id,
                item_id=item_id,
                captured_bv=captured_bv,
            )

    async def get_referral_tree(
        self,
        root_member_id: int,
        requested_depth: int | None = None,
    ) -> TreeNode:
        """Materialize a member's subtree; depth is clamped, never rejected."""
        return await self.trees.build_tree(root_member_id, max_depth=requested_depth)

    async def get_active_distribution_rule(self) -> DistributionRule | None:
        return await self.rules.get_active_rule()

    @log_operation
    async def set_active_distribution_rule(
        self,
        rule_id: int | None = None,
        base_percentage: object | None = None,
        decay_enabled: bool = True,
    ) -> DistributionRule:
        """
        Make a rule the only active one.

        Activates an existing rule when ``rule_id`` is given, otherwise
        creates a new active rule version from ``base_percentage``.

        Raises:
            InvalidInputError: Neither rule_id nor base_percentage given
            NotFoundError: Unknown rule_id
        """
        if rule_id is not None:
            return await self.rules.set_active_rule(rule_id)

        if base_percentage is None:
            raise InvalidInputError("rule_id or basePercentage is required")

        return await self.rules.create_rule(
            base_percentage=base_percentage,
            decay_enabled=decay_enabled,
            is_active=True,
        )

    async def find_integrity_violations(self) -> list[str]:
        return await self.audit.find_integrity_violations()

    async def get_dashboard_totals(self) -> dict[str, str | int]:
        totals = await self.ledger.get_dashboard_totals()
        return totals.to_dict()

    async def get_member_earnings(self, member_id: int) -> dict:
        earnings = await self.ledger.get_member_earnings(member_id)
        return earnings.to_dict()
