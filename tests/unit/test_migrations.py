"""Unit tests for activity table provisioning and upgrades."""

from datetime import date

import pytest
from sqlalchemy import inspect, text

from activity_dashboard.database.migrations import (
    create_activity_table,
    drop_activity_table,
    upgrade_add_activity_unique_key,
)
from activity_dashboard.services import ActivityStore


LEGACY_TABLE = "legacy_user_activity"


async def _table_names(engine):
    async with engine.connect() as conn:
        return await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())


async def _create_legacy_table(engine):
    """Table layout from before the unique key existed."""
    async with engine.begin() as conn:
        await conn.execute(text(
            f"CREATE TABLE {LEGACY_TABLE} ("
            "id INTEGER PRIMARY KEY AUTOINCREMENT, "
            "user_id INTEGER NOT NULL, "
            "activity_date DATE NOT NULL, "
            "activity_type VARCHAR(20) NOT NULL, "
            "activity_count INTEGER NOT NULL)"
        ))
        rows = [
            (1, "2024-06-01", "login", 2),
            (1, "2024-06-01", "login", 3),
            (1, "2024-06-01", "login", 1),
            (2, "2024-06-01", "post", 1),
            (2, "2024-06-01", "post", 4),
            (3, "2024-06-02", "comment", 5),
        ]
        for user_id, day, activity_type, count in rows:
            await conn.execute(
                text(
                    f"INSERT INTO {LEGACY_TABLE} "
                    "(user_id, activity_date, activity_type, activity_count) "
                    "VALUES (:u, :d, :t, :c)"
                ),
                {"u": user_id, "d": day, "t": activity_type, "c": count},
            )


class TestCreateAndDrop:

    @pytest.mark.asyncio
    async def test_create_is_idempotent(self, engine):
        await create_activity_table("wp_user_activity", engine)

        assert "wp_user_activity" in await _table_names(engine)

    @pytest.mark.asyncio
    async def test_drop_removes_table(self, engine):
        await drop_activity_table("wp_user_activity", engine)
        await drop_activity_table("wp_user_activity", engine)

        assert "wp_user_activity" not in await _table_names(engine)


class TestUniqueKeyUpgrade:

    @pytest.mark.asyncio
    async def test_noop_when_key_exists(self, engine):
        assert await upgrade_add_activity_unique_key("wp_user_activity", engine) == 0

    @pytest.mark.asyncio
    async def test_noop_when_table_missing(self, engine):
        assert await upgrade_add_activity_unique_key("never_created", engine) == 0

    @pytest.mark.asyncio
    async def test_merges_duplicates_and_enables_upsert(self, engine):
        await _create_legacy_table(engine)

        merged = await upgrade_add_activity_unique_key(LEGACY_TABLE, engine)

        assert merged == 2
        store = ActivityStore(engine, LEGACY_TABLE)
        assert await store.count_rows() == 3
        assert await store.get_count(1, date(2024, 6, 1), "login") == 6
        assert await store.get_count(2, date(2024, 6, 1), "post") == 5
        assert await store.get_count(3, date(2024, 6, 2), "comment") == 5

        await store.increment(1, date(2024, 6, 1), "login")

        assert await store.get_count(1, date(2024, 6, 1), "login") == 7
        assert await store.count_rows() == 3

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, engine):
        await _create_legacy_table(engine)
        await upgrade_add_activity_unique_key(LEGACY_TABLE, engine)

        assert await upgrade_add_activity_unique_key(LEGACY_TABLE, engine) == 0
