"""
BV distribution: rate arithmetic, rule administration and the ledger engine.
"""

from referral_engine.services.distribution.calculator import (
    LevelPayout,
    calculate_level_amount,
    plan_distribution,
)
from referral_engine.services.distribution.engine import (
    BVDistributionEngine,
    DistributionResult,
)
from referral_engine.services.distribution.rules import DistributionRuleService


__all__ = [
    "BVDistributionEngine",
    "DistributionResult",
    "DistributionRuleService",
    "LevelPayout",
    "calculate_level_amount",
    "plan_distribution",
]
