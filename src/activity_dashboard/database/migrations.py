"""Database migration utilities."""

import logging
from typing import Optional

from sqlalchemy import Index, and_, delete, func, inspect, select, update
from sqlalchemy.ext.asyncio import AsyncEngine

from ..models.activity import build_activity_table, unique_key_name
from .connection import db_manager

logger = logging.getLogger(__name__)

_KEY_COLUMNS = ("user_id", "activity_date", "activity_type")


def _resolve_engine(engine: AsyncEngine = None) -> AsyncEngine:
    if engine is None:
        if not db_manager.engine:
            db_manager.initialize()
        engine = db_manager.engine
    return engine


async def create_activity_table(table_name: str, engine: AsyncEngine = None):
    """Create the activity table if it does not exist."""
    engine = _resolve_engine(engine)
    table = build_activity_table(table_name)

    async with engine.begin() as conn:
        await conn.run_sync(lambda sync_conn: table.create(sync_conn, checkfirst=True))
    logger.info("Activity table %s ready", table_name)


async def drop_activity_table(table_name: str, engine: AsyncEngine = None):
    """Drop the activity table and all recorded counts."""
    engine = _resolve_engine(engine)
    table = build_activity_table(table_name)

    async with engine.begin() as conn:
        await conn.run_sync(lambda sync_conn: table.drop(sync_conn, checkfirst=True))
    logger.info("Activity table %s dropped", table_name)


def _has_unique_key(sync_conn, table_name: str) -> bool:
    inspector = inspect(sync_conn)
    wanted = set(_KEY_COLUMNS)
    for constraint in inspector.get_unique_constraints(table_name):
        if set(constraint["column_names"]) == wanted:
            return True
    for index in inspector.get_indexes(table_name):
        if index.get("unique") and set(index["column_names"]) == wanted:
            return True
    return False


def _merge_duplicate_rows(sync_conn, table) -> int:
    """Collapse rows sharing a key into the row with the lowest id."""
    groups = sync_conn.execute(
        select(
            table.c.user_id,
            table.c.activity_date,
            table.c.activity_type,
            func.min(table.c.id).label("keep_id"),
            func.sum(table.c.activity_count).label("total"),
        )
        .group_by(table.c.user_id, table.c.activity_date, table.c.activity_type)
        .having(func.count(table.c.id) > 1)
    ).all()

    for group in groups:
        same_key = and_(
            table.c.user_id == group.user_id,
            table.c.activity_date == group.activity_date,
            table.c.activity_type == group.activity_type,
        )
        sync_conn.execute(delete(table).where(same_key, table.c.id != group.keep_id))
        sync_conn.execute(
            update(table)
            .where(table.c.id == group.keep_id)
            .values(activity_count=int(group.total))
        )
    return len(groups)


async def upgrade_add_activity_unique_key(table_name: str, engine: AsyncEngine = None) -> int:
    """Migration: enforce one row per (user_id, activity_date, activity_type).

    Tables created before the unique key existed may hold duplicate rows
    left behind by racing read-then-write increments. Those rows are merged
    (counts summed) before the unique index is created.
    Safe to run repeatedly - does nothing once the key exists.

    Returns:
        Number of duplicate key groups that were merged.
    """
    engine = _resolve_engine(engine)
    table = build_activity_table(table_name)

    def _upgrade(sync_conn) -> Optional[int]:
        if not inspect(sync_conn).has_table(table_name):
            return None
        if _has_unique_key(sync_conn, table_name):
            return -1

        merged = _merge_duplicate_rows(sync_conn, table)
        Index(
            unique_key_name(table_name),
            table.c.user_id,
            table.c.activity_date,
            table.c.activity_type,
            unique=True,
        ).create(sync_conn)
        return merged

    async with engine.begin() as conn:
        merged = await conn.run_sync(_upgrade)

    if merged is None:
        logger.warning("Activity table %s does not exist; nothing to upgrade", table_name)
        return 0
    if merged < 0:
        logger.info("Unique key on %s already exists", table_name)
        return 0

    logger.info(
        "Added unique key to %s (merged %d duplicate groups)", table_name, merged
    )
    return merged
