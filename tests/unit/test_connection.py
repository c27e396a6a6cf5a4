"""Unit tests for database engine management."""

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from activity_dashboard.database.connection import DatabaseManager, db_manager, get_db_connection


class TestDatabaseManager:

    def test_initialize_is_idempotent(self):
        manager = DatabaseManager()

        engine = manager.initialize("sqlite+aiosqlite:///:memory:")

        assert manager.initialize() is engine
        assert engine.dialect.name == "sqlite"

    @pytest.mark.asyncio
    async def test_close_releases_engine(self):
        manager = DatabaseManager()
        manager.initialize("sqlite+aiosqlite:///:memory:")

        await manager.close()

        assert manager.engine is None


class TestGetDbConnection:

    @pytest.mark.asyncio
    async def test_yields_connection_on_shared_engine(self):
        try:
            async with get_db_connection() as conn:
                assert isinstance(conn, AsyncConnection)
                result = await conn.execute(text("SELECT 1"))
                assert result.scalar() == 1
            assert db_manager.engine is not None
        finally:
            await db_manager.close()
