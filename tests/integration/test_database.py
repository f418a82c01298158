"""
Integration tests for the session context manager.
"""

import pytest
from sqlalchemy import select

from referral_engine.config.database import engine, get_session


class TestGetSession:
    @pytest.mark.asyncio
    async def test_session_lifecycle(self):
        """Yields a working session and lets caller errors propagate."""
        try:
            async with get_session() as session:
                result = await session.execute(select(1))
                assert result.scalar() == 1

            with pytest.raises(RuntimeError):
                async with get_session() as session:
                    await session.execute(select(1))
                    raise RuntimeError("boom")
        finally:
            await engine.dispose()
