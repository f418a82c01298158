"""
Integration tests for BV distribution.

Tests cover:
- Decaying and flat payouts written to the ledger
- Atomicity (no partial state on failure)
- At-most-once distribution per purchase
- Policy when no rule is active
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from referral_engine.models import Income, IncomeLog, Purchase
from referral_engine.repositories.income_repository import IncomeRepository
from referral_engine.repositories.purchase_repository import PurchaseRepository
from referral_engine.services.compensation_engine import CompensationEngine
from referral_engine.services.distribution import BVDistributionEngine
from referral_engine.utils.exceptions import (
    AlreadyDistributedError,
    InvalidInputError,
    NoActiveRuleError,
    NotFoundError,
)


async def count_rows(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar()


async def build_chain(engine, length):
    """Root plus `length` members each sponsored by the previous one."""
    members = [await engine.register_member(None, "root")]
    for i in range(length):
        members.append(
            await engine.register_member(members[-1].referral_code, f"m{i}")
        )
    return members


class TestDistributePurchase:
    """Purchase plus ledger in one transaction."""

    @pytest.mark.asyncio
    async def test_end_to_end_scenario(self, engine, db_session, active_rule):
        """A buys BV 50 under R: R earns 5.00, one level paid."""
        r = await engine.register_member(None, "R")
        a = await engine.register_member(r.referral_code, "A")
        await engine.register_member(r.referral_code, "B")
        await engine.register_member(r.referral_code, "C")

        result = await engine.distribute_purchase(a.member_id, "sku-1", "50")

        assert result.final_bv == Decimal("50")
        assert result.levels_paid == 1
        assert result.income_rows_created == 1
        assert result.total_income == Decimal("5.00")
        assert result.rule_id == active_rule

        incomes = await IncomeRepository(db_session).get_by_purchase(result.purchase_id)
        assert len(incomes) == 1
        assert incomes[0].to_member_id == r.member_id
        assert incomes[0].from_member_id == a.member_id
        assert incomes[0].level == 1
        assert incomes[0].amount == Decimal("5.00")

        purchase = await PurchaseRepository(db_session).get_by_id(result.purchase_id)
        assert purchase.bv == Decimal("50")
        assert purchase.item_id == "sku-1"
        assert purchase.is_distributed

    @pytest.mark.asyncio
    async def test_four_level_decay(self, engine, db_session, active_rule, sample_bv):
        chain = await build_chain(engine, 4)
        buyer = chain[-1]

        result = await engine.distribute_purchase(buyer.member_id, 7, sample_bv)

        amounts = {p.beneficiary_id: p.amount for p in result.payouts}
        assert amounts == {
            chain[3].member_id: Decimal("10"),
            chain[2].member_id: Decimal("5"),
            chain[1].member_id: Decimal("2.5"),
            chain[0].member_id: Decimal("1.25"),
        }
        assert result.levels_paid == 4
        assert result.total_income == Decimal("18.75")

        log = (
            await db_session.execute(
                select(IncomeLog).where(IncomeLog.purchase_id == result.purchase_id)
            )
        ).scalar_one()
        assert log.income_amount == Decimal("18.75")
        assert log.levels_paid == 4
        assert log.rule_id == active_rule

    @pytest.mark.asyncio
    async def test_flat_rule_pays_level_one_only(self, engine, db_session, sample_bv):
        await engine.set_active_distribution_rule(
            base_percentage="10", decay_enabled=False
        )
        chain = await build_chain(engine, 4)

        result = await engine.distribute_purchase(chain[-1].member_id, "sku", sample_bv)

        assert result.levels_paid == 1
        assert [p.amount for p in result.payouts] == [Decimal("10")]
        assert await count_rows(db_session, Income) == 1

    @pytest.mark.asyncio
    async def test_root_buyer_pays_nobody(self, engine, db_session, active_rule):
        root = await engine.register_member(None, "R")

        result = await engine.distribute_purchase(root.member_id, "sku", "20")

        assert result.levels_paid == 0
        assert result.final_bv == Decimal("20")
        assert await count_rows(db_session, Income) == 0
        assert await count_rows(db_session, IncomeLog) == 1

    @pytest.mark.asyncio
    async def test_to_dict(self, engine, active_rule):
        r = await engine.register_member(None, "R")
        a = await engine.register_member(r.referral_code, "A")

        data = (await engine.distribute_purchase(a.member_id, "sku", "50")).to_dict()

        assert data["final_bv"] == "50.00000000"
        assert data["payouts"][0]["amount"] == "5.00000000"
        assert data["payouts"][0]["beneficiary_id"] == r.member_id


class TestDistributionFailures:
    """Failures never leave partial state."""

    @pytest.mark.asyncio
    async def test_no_active_rule_rolls_back_purchase(self, engine, db_session):
        r = await engine.register_member(None, "R")
        a = await engine.register_member(r.referral_code, "A")

        with pytest.raises(NoActiveRuleError):
            await engine.distribute_purchase(a.member_id, "sku", "50")

        assert await count_rows(db_session, Purchase) == 0
        assert await count_rows(db_session, Income) == 0
        assert await count_rows(db_session, IncomeLog) == 0

    @pytest.mark.asyncio
    async def test_no_active_rule_allowed_by_policy(self, engine, db_session):
        r = await engine.register_member(None, "R")
        a = await engine.register_member(r.referral_code, "A")
        distributor = BVDistributionEngine(db_session, require_active_rule=False)

        result = await distributor.distribute_purchase(a.member_id, "sku", "50")

        assert result.rule_id is None
        assert result.levels_paid == 0
        assert result.final_bv == Decimal("50")
        assert await count_rows(db_session, Income) == 0

        log = (await db_session.execute(select(IncomeLog))).scalar_one()
        assert log.income_amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_negative_bv_rejected(self, engine, db_session, active_rule):
        root = await engine.register_member(None, "R")

        with pytest.raises(InvalidInputError):
            await engine.distribute_purchase(root.member_id, "sku", "-1")

        assert await count_rows(db_session, Purchase) == 0

    @pytest.mark.asyncio
    async def test_oversized_bv_rejected(self, engine, db_session, active_rule):
        root = await engine.register_member(None, "R")

        for raw in ("100000000000", "1e25"):
            with pytest.raises(InvalidInputError) as exc_info:
                await engine.distribute_purchase(root.member_id, "sku", raw)
            assert exc_info.value.message == "BV is out of range"

        assert await count_rows(db_session, Purchase) == 0

    @pytest.mark.asyncio
    async def test_unknown_buyer(self, engine, active_rule):
        with pytest.raises(NotFoundError):
            await engine.distribute_purchase(999, "sku", "10")

    @pytest.mark.asyncio
    async def test_buyer_mismatch(self, engine, db_session, active_rule):
        r = await engine.register_member(None, "R")
        a = await engine.register_member(r.referral_code, "A")
        purchase = await PurchaseRepository(db_session).create(
            buyer_id=a.member_id, item_id="sku", bv=Decimal("0")
        )
        purchase_id = purchase.id
        await db_session.commit()

        with pytest.raises(InvalidInputError):
            await engine.distribution.distribute(r.member_id, "10", purchase_id)


class TestIdempotence:
    """A purchase is distributed at most once."""

    @pytest.mark.asyncio
    async def test_second_run_rejected(self, engine, db_session, active_rule):
        chain = await build_chain(engine, 3)
        buyer = chain[-1]
        result = await engine.distribute_purchase(buyer.member_id, "sku", "100")
        rows_before = await count_rows(db_session, Income)

        with pytest.raises(AlreadyDistributedError):
            await engine.distribution.distribute(
                buyer.member_id, "100", result.purchase_id
            )

        assert await count_rows(db_session, Income) == rows_before
        assert await count_rows(db_session, IncomeLog) == 1

    @pytest.mark.asyncio
    async def test_recorded_purchase_distributed_once(self, engine, db_session, active_rule):
        r = await engine.register_member(None, "R")
        a = await engine.register_member(r.referral_code, "A")
        purchase = await PurchaseRepository(db_session).create(
            buyer_id=a.member_id, item_id="sku", bv=Decimal("0")
        )
        purchase_id = purchase.id
        await db_session.commit()

        first = await engine.distribution.distribute(a.member_id, "40", purchase_id)

        assert first.final_bv == Decimal("40")
        assert first.total_income == Decimal("4")

        with pytest.raises(AlreadyDistributedError):
            await engine.distribution.distribute(a.member_id, "40", purchase_id)


class TestTimeout:
    """A caller timeout aborts the whole transaction."""

    @pytest.mark.asyncio
    async def test_timeout_commits_nothing(self, file_session_maker):
        async with file_session_maker() as session:
            engine = CompensationEngine(session)
            await engine.set_active_distribution_rule(base_percentage="10")
            r = await engine.register_member(None, "R")
            a = await engine.register_member(r.referral_code, "A")

        async with file_session_maker() as session:
            engine = CompensationEngine(session)
            with pytest.raises(TimeoutError):
                await engine.distribute_purchase(a.member_id, "sku", "50", timeout=0)

        async with file_session_maker() as session:
            assert await count_rows(session, Purchase) == 0
            assert await count_rows(session, Income) == 0
            assert await count_rows(session, IncomeLog) == 0

    @pytest.mark.asyncio
    async def test_generous_timeout_succeeds(self, engine, active_rule):
        r = await engine.register_member(None, "R")
        a = await engine.register_member(r.referral_code, "A")

        result = await engine.distribute_purchase(a.member_id, "sku", "50", timeout=30)

        assert result.levels_paid == 1
