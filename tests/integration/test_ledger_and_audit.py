"""
Integration tests for ledger reporting and tree integrity audit.
"""

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import text

from referral_engine.services.tree import TreeAuditService
from referral_engine.utils.exceptions import NotFoundError, TreeIntegrityError


@pytest_asyncio.fixture
async def network(engine, active_rule):
    """R with A (left) and B (right); A buys 50, B buys 20."""
    r = await engine.register_member(None, "R")
    a = await engine.register_member(r.referral_code, "A")
    b = await engine.register_member(r.referral_code, "B")
    await engine.distribute_purchase(a.member_id, "sku-a", "50")
    await engine.distribute_purchase(b.member_id, "sku-b", "20")
    return r, a, b


class TestLedgerQueries:
    """Member and dashboard reporting."""

    @pytest.mark.asyncio
    async def test_member_incomes_newest_first(self, engine, network):
        r, a, b = network

        incomes = await engine.ledger.list_member_incomes(r.member_id)

        assert [i.from_referral_code for i in incomes] == [b.referral_code, a.referral_code]
        assert [i.amount for i in incomes] == [Decimal("2"), Decimal("5")]
        assert all(i.level == 1 for i in incomes)
        assert incomes[0].to_dict()["amount"] == "2.00000000"

    @pytest.mark.asyncio
    async def test_income_page_size(self, engine, network):
        r, _, _ = network

        incomes = await engine.ledger.list_member_incomes(r.member_id, limit=1)

        assert len(incomes) == 1

    @pytest.mark.asyncio
    async def test_member_purchases(self, engine, network):
        _, a, _ = network

        purchases = await engine.ledger.list_member_purchases(a.member_id)

        assert len(purchases) == 1
        assert purchases[0].item_id == "sku-a"
        assert purchases[0].bv == Decimal("50")
        assert purchases[0].distributed_at is not None

    @pytest.mark.asyncio
    async def test_member_earnings(self, engine, network):
        r, a, _ = network

        earnings = await engine.get_member_earnings(r.member_id)
        nothing = await engine.ledger.get_member_earnings(a.member_id)

        assert earnings["total_earned"] == "7.00000000"
        assert earnings["income_count"] == 2
        assert earnings["by_level"][1]["count"] == 2
        assert nothing.total_earned == Decimal("0")
        assert nothing.by_level == {}

    @pytest.mark.asyncio
    async def test_dashboard_totals(self, engine, network):
        totals = await engine.ledger.get_dashboard_totals()

        assert totals.total_members == 3
        assert totals.total_bv_generated == Decimal("70")
        assert totals.total_income_distributed == Decimal("7")

    @pytest.mark.asyncio
    async def test_dashboard_empty(self, engine):
        totals = await engine.get_dashboard_totals()

        assert totals == {
            "total_members": 0,
            "total_bv_generated": "0",
            "total_income_distributed": "0",
        }

    @pytest.mark.asyncio
    async def test_unknown_member(self, engine):
        with pytest.raises(NotFoundError):
            await engine.ledger.list_member_incomes(555)


class TestTreeAudit:
    """Structural checks over the member table."""

    @pytest.mark.asyncio
    async def test_sound_tree(self, engine):
        r = await engine.register_member(None, "R")
        for name in ("A", "B", "C", "D"):
            await engine.register_member(r.referral_code, name)

        assert await engine.find_integrity_violations() == []

    @pytest.mark.asyncio
    async def test_detects_parent_loop(self, engine, db_session, active_rule):
        r = await engine.register_member(None, "R")
        a = await engine.register_member(r.referral_code, "A")
        c = await engine.register_member(a.referral_code, "C")

        # Corrupt the tree: R hangs under its own grandchild
        await db_session.execute(
            text("UPDATE members SET parent_id = :parent, position = 'right' WHERE id = :id"),
            {"parent": c.member_id, "id": r.member_id},
        )
        await db_session.commit()
        db_session.expire_all()

        issues = await TreeAuditService(db_session).find_integrity_violations()

        assert len(issues) == 1
        assert issues[0].startswith("Parent chain loops")

        with pytest.raises(TreeIntegrityError):
            await engine.distribute_purchase(c.member_id, "sku", "10")

        with pytest.raises(TreeIntegrityError):
            await engine.get_referral_tree(a.member_id, 5)
