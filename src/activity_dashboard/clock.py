"""Site-local calendar helpers."""

import calendar
from datetime import date, datetime, timedelta
from typing import Tuple
from zoneinfo import ZoneInfo


class SiteClock:
    """Resolves "today" in the site's configured time zone, not UTC."""

    def __init__(self, timezone_name: str = "UTC"):
        self.timezone_name = timezone_name
        self._tz = ZoneInfo(timezone_name)

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()

    def trailing_window(self, days: int) -> Tuple[date, date]:
        """Return ``[today - days, today]``."""
        today = self.today()
        return today - timedelta(days=days), today

    def current_month(self) -> Tuple[date, date]:
        """Return the first and last day of the current calendar month."""
        return month_bounds(self.today())


def month_bounds(day: date) -> Tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)
