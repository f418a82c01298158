"""
Distribution rule administration.

Maintains the single active payout rule consumed by the distribution engine.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.business_constants import DEFAULT_RECENT_RULES
from referral_engine.models.distribution_rule import DistributionRule
from referral_engine.repositories.distribution_rule_repository import (
    DistributionRuleRepository,
)
from referral_engine.services.base_service import BaseService, transaction
from referral_engine.utils.exceptions import InvalidInputError, NotFoundError
from referral_engine.validators import normalize_percentage


def _parse_percentage(value: object) -> Decimal:
    is_valid, fraction, error = normalize_percentage(value)
    if not is_valid or fraction is None:
        raise InvalidInputError(error or "Invalid basePercentage", value=str(value))
    return fraction


class DistributionRuleService(BaseService):
    """
    Read and write distribution rules.

    Activation is deactivate-all-then-activate-one inside one transaction;
    the partial unique index on is_active rejects a concurrent second
    activation.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize rule service."""
        super().__init__(session)
        self.rule_repo = DistributionRuleRepository(session)

    async def get_active_rule(self) -> DistributionRule | None:
        """Get the rule governing new purchases, if any."""
        return await self.rule_repo.get_active()

    async def list_recent_rules(
        self, limit: int = DEFAULT_RECENT_RULES
    ) -> list[DistributionRule]:
        """Get latest rule versions, newest first."""
        return await self.rule_repo.get_recent(limit=limit)

    @transaction
    async def create_rule(
        self,
        base_percentage: object,
        decay_enabled: bool,
        is_active: bool = True,
    ) -> DistributionRule:
        """
        Create a new rule version.

        Args:
            base_percentage: Level-1 rate ("10" and "0.10" both mean 10%)
            decay_enabled: Halve the rate per level
            is_active: Activate immediately (deactivates all others)

        Returns:
            Created rule

        Raises:
            InvalidInputError: Percentage outside [0, 1] after normalization
        """
        fraction = _parse_percentage(base_percentage)

        if is_active:
            await self.rule_repo.deactivate_all()

        rule = await self.rule_repo.create(
            version=await self.rule_repo.next_version(),
            base_percentage=fraction,
            decay_enabled=bool(decay_enabled),
            is_active=bool(is_active),
        )

        self.logger.info(
            "Distribution rule created",
            extra={
                "rule_id": rule.id,
                "version": rule.version,
                "base_percentage": str(fraction),
                "decay_enabled": rule.decay_enabled,
                "is_active": rule.is_active,
            },
        )
        return rule

    @transaction
    async def update_rule(
        self,
        rule_id: int,
        base_percentage: object | None = None,
        decay_enabled: bool | None = None,
        is_active: bool | None = None,
    ) -> DistributionRule:
        """
        Update an existing rule in place.

        Income rows already written are not touched.

        Args:
            rule_id: Rule to update
            base_percentage: New level-1 rate
            decay_enabled: New decay flag
            is_active: Activate (deactivating others) or deactivate

        Returns:
            Updated rule

        Raises:
            InvalidInputError: Nothing to update or bad percentage
            NotFoundError: Unknown rule
        """
        data: dict[str, object] = {}
        if base_percentage is not None:
            data["base_percentage"] = _parse_percentage(base_percentage)
        if decay_enabled is not None:
            data["decay_enabled"] = bool(decay_enabled)
        if is_active is not None:
            data["is_active"] = bool(is_active)

        if not data:
            raise InvalidInputError("No fields to update", rule_id=rule_id)

        if await self.rule_repo.get_by_id(rule_id) is None:
            raise NotFoundError("Distribution rule not found", rule_id=rule_id)

        if is_active:
            await self.rule_repo.deactivate_all(except_id=rule_id)

        rule = await self.rule_repo.update(rule_id, for_update=True, **data)

        self.logger.info(
            "Distribution rule updated",
            extra={
                "rule_id": rule_id,
                "fields": sorted(data),
                "is_active": rule.is_active,
            },
        )
        return rule

    async def set_active_rule(self, rule_id: int) -> DistributionRule:
        """Make an existing rule the only active one."""
        return await self.update_rule(rule_id, is_active=True)
