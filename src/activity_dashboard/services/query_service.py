"""Dashboard data assembly.

The login line chart follows the requested date range. The post/comment bar
chart is always pinned to the current calendar month.
"""

import csv
import io
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..clock import SiteClock
from ..exceptions import DateRangeError
from ..models.activity import (
    ActivityType,
    DailyTotal,
    UserActivityTotals,
    UserTypeTotal,
)
from ..observability.metrics import observe_dashboard_query
from .activity_store import ActivityStore

logger = logging.getLogger(__name__)

DateLike = Union[date, str, None]

BAR_CHART_TYPES = (ActivityType.POST, ActivityType.COMMENT)

_ISO_DAY = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


@dataclass
class DashboardData:
    start_date: date
    end_date: date
    login_series: List[DailyTotal] = field(default_factory=list)
    bar_rows: List[UserTypeTotal] = field(default_factory=list)
    bar_series: List[UserActivityTotals] = field(default_factory=list)


def parse_date(value: DateLike, name: str = "date") -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string; empty values become ``None``.

    Only the extended calendar form is accepted. Compact (``20240601``) and
    week-date (``2024-W23-6``) spellings are rejected even where
    ``date.fromisoformat`` would take them.
    """
    if value is None:
        return None
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    message = f"Invalid {name}: {text!r} (expected YYYY-MM-DD)"
    if not _ISO_DAY.fullmatch(text):
        raise DateRangeError(message, value=value)
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise DateRangeError(message, value=value)


def pivot_bar_rows(rows: Iterable[UserTypeTotal]) -> List[UserActivityTotals]:
    """Fold flat (user, type, total) rows into one dense entry per user.

    Users keep the order in which they first appear; a type with no row for
    a user is reported as 0.
    """
    posts: Dict[int, int] = {}
    comments: Dict[int, int] = {}
    user_ids: List[int] = []

    for row in rows:
        if row.user_id not in posts:
            user_ids.append(row.user_id)
            posts[row.user_id] = 0
            comments[row.user_id] = 0
        if row.activity_type == ActivityType.POST:
            posts[row.user_id] = row.total
        elif row.activity_type == ActivityType.COMMENT:
            comments[row.user_id] = row.total

    return [
        UserActivityTotals(user_id=uid, post_total=posts[uid], comment_total=comments[uid])
        for uid in user_ids
    ]


def login_series_to_csv(series: Iterable[DailyTotal]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")
    writer.writerow(["Date", "Logins"])
    for point in series:
        writer.writerow([point.activity_date.isoformat(), point.total])
    return buffer.getvalue()


class ActivityQueryService:
    """Builds chart series from the activity store."""

    def __init__(self, store: ActivityStore, clock: SiteClock, default_range_days: int = 30):
        self.store = store
        self.clock = clock
        self.default_range_days = default_range_days

    def resolve_date_range(self, start_date: DateLike, end_date: DateLike) -> Tuple[date, date]:
        """Validate the requested range or fall back to the trailing window.

        Raises:
            DateRangeError: A bound is malformed or start is after end.
        """
        start = parse_date(start_date, "start_date")
        end = parse_date(end_date, "end_date")

        if start is None or end is None:
            return self.clock.trailing_window(self.default_range_days)

        if start > end:
            raise DateRangeError(
                f"start_date {start.isoformat()} is after end_date {end.isoformat()}",
                value=(start_date, end_date),
            )
        return start, end

    async def get_login_series(self, start: date, end: date) -> List[DailyTotal]:
        return await self.store.aggregate_by_date(ActivityType.LOGIN, start, end)

    async def get_bar_rows(self) -> List[UserTypeTotal]:
        month_start, month_end = self.clock.current_month()
        totals = await self.store.aggregate_by_user(BAR_CHART_TYPES, month_start, month_end)
        return [
            UserTypeTotal(user_id=user_id, activity_type=activity_type, total=total)
            for (user_id, activity_type), total in totals.items()
        ]

    async def get_dashboard_data(
        self, start_date: DateLike = None, end_date: DateLike = None
    ) -> DashboardData:
        start, end = self.resolve_date_range(start_date, end_date)

        started = time.perf_counter()
        login_series = await self.get_login_series(start, end)
        bar_rows = await self.get_bar_rows()
        observe_dashboard_query(time.perf_counter() - started)

        logger.debug(
            "Dashboard data %s..%s: %d login points, %d bar rows",
            start.isoformat(), end.isoformat(), len(login_series), len(bar_rows),
        )
        return DashboardData(
            start_date=start,
            end_date=end,
            login_series=login_series,
            bar_rows=bar_rows,
            bar_series=pivot_bar_rows(bar_rows),
        )

    async def export_login_csv(self, start_date: DateLike = None, end_date: DateLike = None) -> str:
        """Login series for the range as ``Date,Logins`` CSV text."""
        start, end = self.resolve_date_range(start_date, end_date)
        return login_series_to_csv(await self.get_login_series(start, end))
