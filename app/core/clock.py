"""
Timezone-aware clock. Every "today", day boundary and display string goes through here,
so the host timezone never leaks into attendance dates or ledger rows.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

from fastapi import Request

DISPLAY_DATE_FORMAT = "%d-%m-%Y"
NOT_AVAILABLE = "N/A"


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock:
    def __init__(self, tz_name: str, weekly_rest_day: int = 6) -> None:
        self.tz = ZoneInfo(tz_name)
        self.weekly_rest_day = weekly_rest_day

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def local(self, instant: datetime) -> datetime:
        return as_utc(instant).astimezone(self.tz)

    def today(self) -> date:
        return self.normalize_to_day(self.now())

    def normalize_to_day(self, instant: datetime) -> date:
        return self.local(instant).date()

    def day_bounds(self, day: date) -> Tuple[datetime, datetime]:
        """Start (inclusive) and end (exclusive) of a civil day, as UTC instants."""
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.tz)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    def today_bounds(self) -> Tuple[datetime, datetime]:
        return self.day_bounds(self.today())

    def is_rest_day(self, day: date) -> bool:
        return day.weekday() == self.weekly_rest_day

    def format_display_date(self, value: Union[date, datetime]) -> str:
        if isinstance(value, datetime):
            value = self.normalize_to_day(value)
        return value.strftime(DISPLAY_DATE_FORMAT)

    def format_display_time(self, instant: Optional[datetime]) -> str:
        """12-hour clock without a leading zero, e.g. ``9:05 AM``."""
        if instant is None:
            return NOT_AVAILABLE
        local = self.local(instant)
        hour = local.hour % 12 or 12
        suffix = "AM" if local.hour < 12 else "PM"
        return f"{hour}:{local.minute:02d} {suffix}"

    @staticmethod
    def parse_display_date(text: Optional[str]) -> Optional[date]:
        if not text or not text.strip():
            return None
        try:
            return datetime.strptime(text.strip(), DISPLAY_DATE_FORMAT).date()
        except ValueError:
            return None


class FixedClock(Clock):
    """Clock pinned to one instant. Used by tests and for replaying a given day."""

    def __init__(self, instant: datetime, tz_name: str, weekly_rest_day: int = 6) -> None:
        super().__init__(tz_name, weekly_rest_day)
        self.instant = as_utc(instant)

    def now(self) -> datetime:
        return self.instant

    def advance(self, **kwargs) -> None:
        self.instant = self.instant + timedelta(**kwargs)


def get_clock(request: Request) -> Clock:
    """FastAPI dependency: the clock built in create_app."""
    return request.app.state.clock
