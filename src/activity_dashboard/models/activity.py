"""Per-user daily activity counter table."""

import enum
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)


class ActivityType(str, enum.Enum):
    """Closed set of trackable activities."""

    LOGIN = "login"
    POST = "post"
    COMMENT = "comment"


def unique_key_name(table_name: str) -> str:
    return f"uq_{table_name}_user_date_type"


def build_activity_table(table_name: str, metadata: Optional[MetaData] = None) -> Table:
    """Build the activity table definition for a configured table name.

    One row per (user_id, activity_date, activity_type). The triple is
    declared unique so increments can run as a single upsert statement.
    """
    if metadata is None:
        metadata = MetaData()

    allowed = ", ".join(f"'{t.value}'" for t in ActivityType)
    return Table(
        table_name,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("user_id", Integer, nullable=False),
        Column("activity_date", Date, nullable=False),
        Column("activity_type", String(20), nullable=False),
        Column("activity_count", Integer, nullable=False, default=0),
        UniqueConstraint(
            "user_id", "activity_date", "activity_type",
            name=unique_key_name(table_name),
        ),
        CheckConstraint(
            f"activity_type IN ({allowed})",
            name=f"ck_{table_name}_activity_type",
        ),
        CheckConstraint(
            "activity_count >= 0",
            name=f"ck_{table_name}_activity_count",
        ),
        Index(f"ix_{table_name}_type_date", "activity_type", "activity_date"),
    )


@dataclass(frozen=True)
class DailyTotal:
    """Summed count of one activity type on one day."""

    activity_date: date
    total: int


@dataclass(frozen=True)
class UserTypeTotal:
    """Summed count of one activity type for one user."""

    user_id: int
    activity_type: ActivityType
    total: int


@dataclass(frozen=True)
class UserActivityTotals:
    """Post and comment totals for one user, both always present."""

    user_id: int
    post_total: int = 0
    comment_total: int = 0
