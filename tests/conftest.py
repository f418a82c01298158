"""Pytest configuration and shared fixtures for all tests."""

import os

# Minimal environment for settings validation; must be set before engine imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.pool import StaticPool

from referral_engine.config.database import build_engine, build_session_maker
from referral_engine.models import Base
from referral_engine.services.compensation_engine import CompensationEngine


def _enable_foreign_keys(engine) -> None:
    """SQLite ignores FOREIGN KEY clauses unless asked per connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _immediate_transactions(engine) -> None:
    """Take the SQLite write lock at BEGIN so concurrent sessions queue up."""

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@pytest_asyncio.fixture
async def db_engine():
    """In-memory database with the full schema, fresh per test."""
    engine = build_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    _enable_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Async session bound to the in-memory database."""
    session_maker = build_session_maker(db_engine)
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def file_session_maker(tmp_path):
    """
    Session maker over a file-backed database.

    Every session gets its own connection; SQLite's busy timeout makes
    concurrent writers wait for each other instead of failing.
    """
    engine = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tree.db'}",
        echo=False,
        connect_args={"timeout": 30},
    )
    _enable_foreign_keys(engine)
    _immediate_transactions(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_maker(engine)

    await engine.dispose()


@pytest.fixture
def engine(db_session):
    """CompensationEngine over the test session."""
    return CompensationEngine(db_session)


@pytest_asyncio.fixture
async def active_rule(engine):
    """Active rule: 10% at level 1, halving per level. Returns its id."""
    rule = await engine.set_active_distribution_rule(
        base_percentage="0.10", decay_enabled=True
    )
    return rule.id


@pytest.fixture
def sample_bv():
    """Standard BV used in distribution scenarios."""
    return Decimal("100")
