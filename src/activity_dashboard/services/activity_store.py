"""Activity counter storage.

All reads and writes against the activity table go through ``ActivityStore``.
Increments are a single upsert statement on dialects that support one, so two
requests recording the first activity of the day cannot lose an update.
"""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from ..exceptions import StorageError
from ..models.activity import (
    ActivityType,
    DailyTotal,
    build_activity_table,
)

logger = logging.getLogger(__name__)

ActivityTypeLike = Union[ActivityType, str]


class ActivityStore:
    """Owns the activity table for one configured table name."""

    def __init__(self, engine: AsyncEngine, table_name: str, max_retries: int = 3):
        self.engine = engine
        self.table_name = table_name
        self.table = build_activity_table(table_name)
        self.max_retries = max_retries

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def increment(
        self, user_id: int, activity_date: date, activity_type: ActivityTypeLike
    ) -> None:
        """Add one to the (user, day, type) counter, creating it at 1."""
        activity_type = ActivityType(activity_type)
        values = {
            "user_id": int(user_id),
            "activity_date": activity_date,
            "activity_type": activity_type.value,
        }

        try:
            stmt = self._upsert_statement(values)
            if stmt is None:
                await self._increment_fallback(values)
                return
            async with self.engine.begin() as conn:
                await conn.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to increment {activity_type.value} count for user {user_id}: {e}",
                operation="increment",
            ) from e

        logger.debug(
            "Incremented %s for user %s on %s",
            activity_type.value, user_id, activity_date.isoformat(),
        )

    def _upsert_statement(self, values: dict):
        t = self.table
        dialect_name = self.engine.dialect.name

        if dialect_name in ("postgresql", "sqlite"):
            dialect_insert = postgresql.insert if dialect_name == "postgresql" else sqlite.insert
            return (
                dialect_insert(t)
                .values(activity_count=1, **values)
                .on_conflict_do_update(
                    index_elements=[t.c.user_id, t.c.activity_date, t.c.activity_type],
                    set_={"activity_count": t.c.activity_count + 1},
                )
            )

        if dialect_name in ("mysql", "mariadb"):
            return (
                mysql.insert(t)
                .values(activity_count=1, **values)
                .on_duplicate_key_update(activity_count=t.c.activity_count + 1)
            )

        return None

    async def _increment_fallback(self, values: dict) -> None:
        """Update-then-insert for dialects without an upsert statement.

        A concurrent first insert surfaces as IntegrityError on the unique
        key; the transaction is rolled back and the update retried.
        """
        t = self.table
        same_key = and_(
            t.c.user_id == values["user_id"],
            t.c.activity_date == values["activity_date"],
            t.c.activity_type == values["activity_type"],
        )

        for attempt in range(self.max_retries + 1):
            async with self.engine.connect() as conn:
                result = await conn.execute(
                    update(t).where(same_key).values(activity_count=t.c.activity_count + 1)
                )
                if (result.rowcount or 0) == 0:
                    try:
                        await conn.execute(insert(t).values(activity_count=1, **values))
                    except IntegrityError:
                        await conn.rollback()
                        logger.debug(
                            "Concurrent insert on %s, retrying (attempt %d)",
                            self.table_name, attempt + 1,
                        )
                        continue
                await conn.commit()
                return

        raise StorageError(
            f"Gave up incrementing {values['activity_type']} for user "
            f"{values['user_id']} after {self.max_retries + 1} attempts",
            operation="increment",
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _fetch(self, stmt, operation: str):
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                return result.all()
        except SQLAlchemyError as e:
            raise StorageError(
                f"Activity query failed ({operation}): {e}", operation=operation
            ) from e

    async def aggregate_by_date(
        self, activity_type: ActivityTypeLike, start_date: date, end_date: date
    ) -> List[DailyTotal]:
        """Sum counts across users per day within ``[start_date, end_date]``.

        Days without rows are absent from the result, which is ordered
        ascending by date.
        """
        activity_type = ActivityType(activity_type)
        t = self.table
        stmt = (
            select(t.c.activity_date, func.sum(t.c.activity_count).label("total"))
            .where(
                t.c.activity_type == activity_type.value,
                t.c.activity_date.between(start_date, end_date),
            )
            .group_by(t.c.activity_date)
            .order_by(t.c.activity_date.asc())
        )
        rows = await self._fetch(stmt, "aggregate_by_date")
        return [DailyTotal(activity_date=r.activity_date, total=int(r.total or 0)) for r in rows]

    async def aggregate_by_user(
        self,
        activity_types: Iterable[ActivityTypeLike],
        start_date: date,
        end_date: date,
    ) -> Dict[Tuple[int, ActivityType], int]:
        """Sum counts per user and type within ``[start_date, end_date]``.

        The mapping keeps the row order of the query (user id, then type).
        """
        types = sorted({ActivityType(a).value for a in activity_types})
        if not types:
            return {}

        t = self.table
        stmt = (
            select(
                t.c.user_id,
                t.c.activity_type,
                func.sum(t.c.activity_count).label("total"),
            )
            .where(
                t.c.activity_type.in_(types),
                t.c.activity_date.between(start_date, end_date),
            )
            .group_by(t.c.user_id, t.c.activity_type)
            .order_by(t.c.user_id.asc(), t.c.activity_type.asc())
        )
        rows = await self._fetch(stmt, "aggregate_by_user")

        totals: Dict[Tuple[int, ActivityType], int] = {}
        for r in rows:
            totals[(int(r.user_id), ActivityType(r.activity_type))] = int(r.total or 0)
        return totals

    async def get_count(
        self, user_id: int, activity_date: date, activity_type: ActivityTypeLike
    ) -> int:
        """Stored count for one key, 0 when no row exists."""
        activity_type = ActivityType(activity_type)
        t = self.table
        stmt = select(t.c.activity_count).where(
            t.c.user_id == user_id,
            t.c.activity_date == activity_date,
            t.c.activity_type == activity_type.value,
        )
        rows = await self._fetch(stmt, "get_count")
        return int(rows[0].activity_count) if rows else 0

    async def count_rows(self, user_id: Optional[int] = None) -> int:
        """Number of stored rows, optionally for one user."""
        t = self.table
        stmt = select(func.count(t.c.id))
        if user_id is not None:
            stmt = stmt.where(t.c.user_id == user_id)
        rows = await self._fetch(stmt, "count_rows")
        return int(rows[0][0] or 0)
