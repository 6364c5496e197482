# ============================================================================
# Platform Clock & Timezone Resolver
# ============================================================================
"""
Every date-bucketed rule (daily statuses, streaks, session quotas, the
spin wheel, weekly leaderboards) uses the calendar of the platform timezone,
never the UTC date. Between local midnight and 08:00 the UTC date is still
"yesterday", which is exactly the window where UTC bucketing breaks streaks.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from app.config import get_settings


class Clock:
    """Source of "now" plus conversions into the platform-local calendar"""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = ZoneInfo(tz_name or get_settings().PLATFORM_TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def local_date(self, moment: datetime) -> date:
        # Naive timestamps come back from SQLite; they are stored as UTC
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.tz).date()

    def local_today(self) -> date:
        return self.local_date(self.now())

    def local_midnight(self, day: date) -> datetime:
        """UTC instant of 00:00 local time on ``day``"""
        return datetime.combine(day, time.min, tzinfo=self.tz).astimezone(timezone.utc)

    def local_day_bounds(self, day: date) -> Tuple[datetime, datetime]:
        return self.local_midnight(day), self.local_midnight(day + timedelta(days=1))

    @staticmethod
    def week_start_for(day: date) -> date:
        """Monday of the week containing ``day``"""
        return day - timedelta(days=day.weekday())

    def week_bounds(self, week_start: date) -> Tuple[datetime, datetime]:
        return self.local_midnight(week_start), self.local_midnight(week_start + timedelta(days=7))

    def current_week_start(self) -> date:
        return self.week_start_for(self.local_today())

    def previous_week_start(self) -> date:
        """Monday of the week that has just ended.

        Stepping back one day first means a run at Monday 00:00 local targets
        the week that closed at that instant.
        """
        return self.week_start_for(self.local_today() - timedelta(days=1))


class FixedClock(Clock):
    """Clock pinned to a given instant, for tests and backfills"""

    def __init__(self, moment: datetime, tz_name: Optional[str] = None):
        super().__init__(tz_name)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def advance(self, **kwargs) -> None:
        self.moment = self.moment + timedelta(**kwargs)


_default_clock: Optional[Clock] = None


def get_clock() -> Clock:
    global _default_clock
    if _default_clock is None:
        _default_clock = Clock()
    return _default_clock
