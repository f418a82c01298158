"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from referral_engine.models.base import Base
from referral_engine.models.distribution_rule import DistributionRule
from referral_engine.models.enums import Position
from referral_engine.models.income import Income
from referral_engine.models.income_log import IncomeLog
from referral_engine.models.member import Member
from referral_engine.models.purchase import Purchase


__all__ = [
    "Base",
    "DistributionRule",
    "Income",
    "IncomeLog",
    "Member",
    "Position",
    "Purchase",
]
