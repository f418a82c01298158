"""
BV distribution engine.

Converts a purchase's Business Volume into a decaying income ledger across
the buyer's ancestor chain in one all-or-nothing transaction.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.settings import settings
from referral_engine.repositories.distribution_rule_repository import (
    DistributionRuleRepository,
)
from referral_engine.repositories.income_log_repository import (
    IncomeLogRepository,
)
from referral_engine.repositories.income_repository import IncomeRepository
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.repositories.purchase_repository import PurchaseRepository
from referral_engine.services.base_service import BaseService, transaction
from referral_engine.services.distribution.calculator import (
    LevelPayout,
    plan_distribution,
)
from referral_engine.utils.datetime_utils import utc_now
from referral_engine.utils.exceptions import (
    AlreadyDistributedError,
    InvalidInputError,
    NoActiveRuleError,
    NotFoundError,
    TreeIntegrityError,
    is_duplicate_distribution,
)
from referral_engine.validators import validate_bv


@dataclass(frozen=True)
class DistributionResult:
    """Outcome of one distribution run."""

    purchase_id: int
    final_bv: Decimal
    levels_paid: int
    income_rows_created: int
    total_income: Decimal
    rule_id: int | None
    payouts: tuple[LevelPayout, ...] = ()

    def to_dict(self) -> dict:
        """Serializable representation (Decimals as strings)."""
        return {
            "purchase_id": self.purchase_id,
            "final_bv": str(self.final_bv),
            "levels_paid": self.levels_paid,
            "income_rows_created": self.income_rows_created,
            "total_income": str(self.total_income),
            "rule_id": self.rule_id,
            "payouts": [
                {
                    "beneficiary_id": p.beneficiary_id,
                    "level": p.level,
                    "rate": str(p.rate),
                    "amount": str(p.amount),
                }
                for p in self.payouts
            ],
        }


def _parse_bv(value: object) -> Decimal:
    is_valid, bv, error = validate_bv(value)
    if not is_valid or bv is None:
        raise InvalidInputError(error or "Invalid BV", bv=str(value))
    return bv


class BVDistributionEngine(BaseService):
    """
    Distributes purchase BV up the binary tree.

    Write set per purchase: the purchase's final BV and distributed_at,
    one Income row per paid level, one IncomeLog aggregate row. All of it
    commits together or not at all. A purchase is distributed at most once:
    distributed_at, the (purchase, beneficiary) unique key and the unique
    income log per purchase each reject a second run.
    """

    def __init__(
        self,
        session: AsyncSession,
        max_level: int | None = None,
        min_payable_unit: Decimal | None = None,
        require_active_rule: bool | None = None,
    ) -> None:
        """
        Initialize distribution engine.

        Args:
            session: Async database session
            max_level: Ancestor level cap (defaults to settings)
            min_payable_unit: Smallest payable amount (defaults to settings)
            require_active_rule: Fail without an active rule (defaults to settings)
        """
        super().__init__(session)
        self.member_repo = MemberRepository(session)
        self.purchase_repo = PurchaseRepository(session)
        self.income_repo = IncomeRepository(session)
        self.income_log_repo = IncomeLogRepository(session)
        self.rule_repo = DistributionRuleRepository(session)

        self.max_level = max_level or settings.distribution_max_level
        self.min_payable_unit = min_payable_unit or settings.min_payable_unit
        self.require_active_rule = (
            settings.require_active_rule
            if require_active_rule is None
            else require_active_rule
        )

    @transaction
    async def distribute_purchase(
        self,
        buyer_id: int,
        item_id: str | int,
        captured_bv: object,
    ) -> DistributionResult:
        """
        Record a purchase and distribute its BV in one transaction.

        The purchase is inserted with a zero BV placeholder, the ledger is
        computed and written, then the purchase is patched with the final BV.
        Any failure rolls back the purchase as well.

        Args:
            buyer_id: Buying member
            item_id: Catalog item reference
            captured_bv: BV copied from the item at purchase time

        Returns:
            DistributionResult

        Raises:
            InvalidInputError: Negative or malformed BV
            NotFoundError: Buyer does not exist
            NoActiveRuleError: No active rule and rules are required
        """
        bv = _parse_bv(captured_bv)

        if await self.member_repo.get_by_id(buyer_id) is None:
            raise NotFoundError("Buyer not found", buyer_id=buyer_id)

        purchase = await self.purchase_repo.create(
            buyer_id=buyer_id,
            item_id=str(item_id),
            bv=Decimal("0"),
        )

        return await self._distribute(buyer_id, bv, purchase.id)

    @transaction
    async def distribute(
        self,
        buyer_id: int,
        item_bv: object,
        purchase_id: int,
    ) -> DistributionResult:
        """
        Distribute BV for an already recorded purchase.

        Args:
            buyer_id: Buyer of the purchase
            item_bv: BV to distribute
            purchase_id: Purchase to settle

        Returns:
            DistributionResult

        Raises:
            NotFoundError: Purchase does not exist
            InvalidInputError: Buyer mismatch or bad BV
            AlreadyDistributedError: Purchase was already settled
            NoActiveRuleError: No active rule and rules are required
        """
        return await self._distribute(buyer_id, _parse_bv(item_bv), purchase_id)

    async def _distribute(
        self,
        buyer_id: int,
        bv: Decimal,
        purchase_id: int,
    ) -> DistributionResult:
        """Distribution body; runs inside the caller's transaction."""
        purchase = await self.purchase_repo.get_by_id(purchase_id, for_update=True)
        if purchase is None:
            raise NotFoundError("Purchase not found", purchase_id=purchase_id)

        if purchase.buyer_id != buyer_id:
            raise InvalidInputError(
                "Purchase belongs to another buyer",
                purchase_id=purchase_id,
                buyer_id=buyer_id,
            )

        if (
            purchase.is_distributed
            or await self.income_log_repo.get_by_purchase(purchase_id) is not None
            or await self.income_repo.exists_for_purchase(purchase_id)
        ):
            self.logger.warning(
                "Distribution rejected: already distributed",
                extra={"purchase_id": purchase_id},
            )
            raise AlreadyDistributedError(
                "Purchase already distributed", purchase_id=purchase_id
            )

        rule = await self.rule_repo.get_active()
        if rule is None and self.require_active_rule:
            self.logger.warning(
                "Distribution rejected: no active rule",
                extra={"purchase_id": purchase_id, "buyer_id": buyer_id},
            )
            raise NoActiveRuleError(
                "No active distribution rule", purchase_id=purchase_id
            )

        payouts: list[LevelPayout] = []
        if rule is not None:
            ancestors = await self.member_repo.get_ancestor_chain(
                buyer_id, self.max_level
            )
            self._check_chain(buyer_id, ancestors)
            payouts = plan_distribution(
                bv=bv,
                schedule=rule,
                ancestors=ancestors,
                min_payable_unit=self.min_payable_unit,
                max_level=self.max_level,
            )

        total_income = sum((p.amount for p in payouts), Decimal("0"))

        try:
            created = await self.income_repo.bulk_create(
                [
                    {
                        "to_member_id": p.beneficiary_id,
                        "from_member_id": buyer_id,
                        "purchase_id": purchase_id,
                        "level": p.level,
                        "bv": bv,
                        "rate": p.rate,
                        "amount": p.amount,
                    }
                    for p in payouts
                ]
            )
            await self.income_log_repo.create(
                purchase_id=purchase_id,
                buyer_id=buyer_id,
                rule_id=rule.id if rule else None,
                bv=bv,
                income_amount=total_income,
                levels_paid=len(payouts),
            )

            purchase.bv = bv
            purchase.distributed_at = utc_now()
            await self.session.flush()
        except IntegrityError as e:
            if is_duplicate_distribution(e):
                raise AlreadyDistributedError(
                    "Purchase already distributed", purchase_id=purchase_id
                ) from e
            raise

        result = DistributionResult(
            purchase_id=purchase_id,
            final_bv=bv,
            levels_paid=len(payouts),
            income_rows_created=created,
            total_income=total_income,
            rule_id=rule.id if rule else None,
            payouts=tuple(payouts),
        )

        self.logger.info(
            "BV distributed",
            extra={
                "purchase_id": purchase_id,
                "buyer_id": buyer_id,
                "bv": str(bv),
                "levels_paid": result.levels_paid,
                "total_income": str(total_income),
                "rule_id": result.rule_id,
            },
        )
        return result

    @staticmethod
    def _check_chain(buyer_id: int, ancestors: list[tuple[int, int]]) -> None:
        """Reject chains that revisit a member (parent loop)."""
        seen = {buyer_id}
        for ancestor_id, level in ancestors:
            if ancestor_id in seen:
                raise TreeIntegrityError(
                    "Ancestor chain loops",
                    buyer_id=buyer_id,
                    member_id=ancestor_id,
                    level=level,
                )
            seen.add(ancestor_id)
