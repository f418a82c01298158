"""
Unit tests for engine errors and IntegrityError classification.
"""

from sqlalchemy.exc import IntegrityError

from referral_engine.utils.exceptions import (
    AlreadyDistributedError,
    NoActiveRuleError,
    NotFoundError,
    ReferralEngineError,
    SlotConflictError,
    is_duplicate_distribution,
    is_slot_collision,
)


def integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, Exception(message))


class TestErrorPayloads:
    def test_codes_are_stable(self):
        assert NotFoundError.code == "not_found"
        assert SlotConflictError.code == "slot_conflict"
        assert NoActiveRuleError.code == "no_active_rule"
        assert AlreadyDistributedError.code == "already_distributed"

    def test_to_dict_includes_context(self):
        error = NotFoundError("Invalid referral code", referral_code="abc")

        assert isinstance(error, ReferralEngineError)
        assert error.to_dict() == {
            "code": "not_found",
            "message": "Invalid referral code",
            "referral_code": "abc",
        }


class TestIntegrityClassification:
    def test_slot_collision_postgres(self):
        error = integrity_error(
            'duplicate key value violates unique constraint "uq_members_parent_position"'
        )
        assert is_slot_collision(error) is True
        assert is_duplicate_distribution(error) is False

    def test_slot_collision_sqlite(self):
        error = integrity_error(
            "UNIQUE constraint failed: members.parent_id, members.position"
        )
        assert is_slot_collision(error) is True

    def test_duplicate_income_sqlite(self):
        error = integrity_error(
            "UNIQUE constraint failed: incomes.purchase_id, incomes.to_member_id"
        )
        assert is_duplicate_distribution(error) is True
        assert is_slot_collision(error) is False

    def test_duplicate_income_log_postgres(self):
        error = integrity_error(
            'duplicate key value violates unique constraint "uq_income_logs_purchase_id"'
        )
        assert is_duplicate_distribution(error) is True

    def test_unrelated_violation(self):
        error = integrity_error("UNIQUE constraint failed: members.referral_code")
        assert is_slot_collision(error) is False
        assert is_duplicate_distribution(error) is False
