"""Tests for capstore.database.

Covers:
    - Health check against the objects table
    - Per-request session dependency
"""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from capstore import database
from capstore.models import StoredObject


class TestCheckDbConnection:
    """Tests for check_db_connection()."""

    @pytest.mark.asyncio
    async def test_healthy_with_schema(self, db_engine, monkeypatch):
        monkeypatch.setattr(database, "_engine", db_engine)
        assert await database.check_db_connection() is True

    @pytest.mark.asyncio
    async def test_unhealthy_without_objects_table(self, monkeypatch):
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
        monkeypatch.setattr(database, "_engine", engine)
        try:
            assert await database.check_db_connection() is False
        finally:
            await engine.dispose()


class TestGetDbSession:
    """Tests for the get_db_session dependency."""

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, session_factory, monkeypatch):
        monkeypatch.setattr(database, "_session_factory", session_factory)

        dependency = database.get_db_session()
        session = await dependency.__anext__()
        session.add(
            StoredObject(
                owner_id="u1",
                bucket="avatars",
                key="u1.png",
                blob_id="3fa2c1d0e4b5968778695a4b3c2d1e0f",
            )
        )
        await session.flush()

        with pytest.raises(RuntimeError):
            await dependency.athrow(RuntimeError("handler failed"))

        async with session_factory() as check:
            result = await check.execute(select(StoredObject))
            assert result.scalars().all() == []
