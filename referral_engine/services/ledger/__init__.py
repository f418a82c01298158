"""
Ledger reporting.
"""

from referral_engine.services.ledger.queries import (
    DashboardTotals,
    IncomeEntry,
    LedgerQueryService,
    MemberEarnings,
    PurchaseEntry,
)


__all__ = [
    "DashboardTotals",
    "IncomeEntry",
    "LedgerQueryService",
    "MemberEarnings",
    "PurchaseEntry",
]
