"""
Engine exceptions.

Every error carries a stable ``code`` the host application maps to its
own user-facing responses.
"""

from sqlalchemy.exc import IntegrityError


class ReferralEngineError(Exception):
    """Base class for all engine errors."""

    code = "engine_error"

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        """Serializable error payload."""
        return {"code": self.code, "message": self.message, **self.context}


class NotFoundError(ReferralEngineError):
    """Sponsor, root member, purchase or rule does not exist."""

    code = "not_found"


class InvalidInputError(ReferralEngineError):
    """Input rejected before touching the store (bad BV, percentage, code)."""

    code = "invalid_input"


class SlotConflictError(ReferralEngineError):
    """Placement race lost on every allowed attempt. Transient."""

    code = "slot_conflict"


class SearchExhaustedError(ReferralEngineError):
    """Placement search exceeded its depth or node bound."""

    code = "search_exhausted"


class NoActiveRuleError(ReferralEngineError):
    """Purchase attempted while no distribution rule is active."""

    code = "no_active_rule"


class AlreadyDistributedError(ReferralEngineError):
    """Distribution already ran for this purchase."""

    code = "already_distributed"


class TreeIntegrityError(ReferralEngineError):
    """Parent links loop or a slot holds more than one member."""

    code = "tree_integrity"


def constraint_name(exc: IntegrityError) -> str:
    """
    Best-effort text of the violated constraint.

    Postgres reports the constraint name, SQLite reports the column list,
    so callers match against both.

    Args:
        exc: Integrity error raised on flush/commit

    Returns:
        Lower-cased driver message
    """
    return str(getattr(exc, "orig", exc)).lower()


def is_slot_collision(exc: IntegrityError) -> bool:
    """Whether the error is a (parent, position) uniqueness violation."""
    message = constraint_name(exc)
    return (
        "uq_members_parent_position" in message
        or "members.parent_id, members.position" in message
    )


def is_duplicate_distribution(exc: IntegrityError) -> bool:
    """Whether the error is a duplicate income or income log for a purchase."""
    message = constraint_name(exc)
    return (
        "uq_incomes_purchase_beneficiary" in message
        or "incomes.purchase_id, incomes.to_member_id" in message
        or "uq_income_logs_purchase_id" in message
        or "income_logs.purchase_id" in message
    )
