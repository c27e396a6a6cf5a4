"""Data models for Activity Dashboard."""

from .activity import (
    ActivityType,
    DailyTotal,
    UserActivityTotals,
    UserTypeTotal,
    build_activity_table,
    unique_key_name,
)

__all__ = [
    "ActivityType",
    "DailyTotal",
    "UserActivityTotals",
    "UserTypeTotal",
    "build_activity_table",
    "unique_key_name",
]
