"""Activity tracking and dashboard services."""

from .activity_store import ActivityStore
from .events import (
    ActivityEventKind,
    CommentPosted,
    EventBus,
    PostSaved,
    UserLoggedIn,
)
from .query_service import ActivityQueryService, DashboardData, pivot_bar_rows
from .tracker import ActivityTracker

__all__ = [
    "ActivityStore",
    "ActivityEventKind",
    "CommentPosted",
    "EventBus",
    "PostSaved",
    "UserLoggedIn",
    "ActivityQueryService",
    "DashboardData",
    "pivot_bar_rows",
    "ActivityTracker",
]
