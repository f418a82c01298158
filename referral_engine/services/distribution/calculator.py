"""
BV distribution calculator.

Pure arithmetic: turns an ancestor chain and a rule into level payouts.
"""

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Protocol

from referral_engine.config.business_constants import (
    MONEY_QUANTUM,
    RATE_QUANTUM,
)


class RateSchedule(Protocol):
    """Anything that can price an ancestor level (DistributionRule does)."""

    def rate_for_level(self, level: int) -> Decimal: ...


@dataclass(frozen=True)
class LevelPayout:
    """Credit owed to one ancestor."""

    beneficiary_id: int
    level: int
    rate: Decimal
    amount: Decimal


def calculate_level_amount(bv: Decimal, rate: Decimal) -> Decimal:
    """
    Calculate the amount for one level.

    Decimal keeps the halving exact; the result is truncated to storage
    precision so the ledger never pays more than bv * rate.

    Args:
        bv: Business Volume basis
        rate: Level rate as a fraction

    Returns:
        Amount truncated to MONEY_QUANTUM
    """
    return (bv * rate).quantize(MONEY_QUANTUM, rounding=ROUND_DOWN)


def plan_distribution(
    bv: Decimal,
    schedule: RateSchedule,
    ancestors: list[tuple[int, int]],
    min_payable_unit: Decimal,
    max_level: int,
) -> list[LevelPayout]:
    """
    Plan payouts up the ancestor chain.

    The walk stops at the first level that earns nothing, falls below the
    minimum payable unit or exceeds max_level. Deeper levels only decay
    further, so nothing beyond that point is payable.

    Args:
        bv: Business Volume of the purchase
        schedule: Rate schedule (the active rule)
        ancestors: (ancestor_id, level) pairs ordered by level
        min_payable_unit: Smallest amount worth a ledger row
        max_level: Level cap

    Returns:
        Payouts ordered by level

    Example:
        bv=100, base=0.10, decay on, 4 ancestors -> 10, 5, 2.5, 1.25
    """
    payouts: list[LevelPayout] = []

    for beneficiary_id, level in ancestors:
        if level > max_level:
            break

        # Pay from the rate as stored so every row keeps amount == bv * rate
        rate = schedule.rate_for_level(level).quantize(
            RATE_QUANTUM, rounding=ROUND_DOWN
        )
        if rate <= 0:
            break

        amount = calculate_level_amount(bv, rate)
        if amount < min_payable_unit:
            break

        payouts.append(
            LevelPayout(
                beneficiary_id=beneficiary_id,
                level=level,
                rate=rate,
                amount=amount,
            )
        )

    return payouts
