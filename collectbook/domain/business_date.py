"""Business calendar: "today" and weekend rules evaluated in a fixed timezone"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from collectbook.domain.exceptions import ConfigurationError

SATURDAY = 5
SUNDAY = 6


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize a stored timestamp to aware UTC (naive values are taken as UTC)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_to_next_weekday(day: date) -> int:
    """Saturday -> 2, Sunday -> 1, any weekday -> 0"""
    if day.weekday() == SATURDAY:
        return 2
    if day.weekday() == SUNDAY:
        return 1
    return 0


class BusinessClock:
    """
    Clock pinned to the business timezone.

    The wall-clock source is injectable so tests can freeze "now":

        clock = BusinessClock("Asia/Manila", now=lambda: datetime(2026, 3, 4, 2, 0, tzinfo=timezone.utc))
    """

    def __init__(self, tz_name: str, now: Optional[Callable[[], datetime]] = None):
        try:
            self.tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown business timezone: {tz_name!r}") from e
        self.tz_name = tz_name
        self._now = now or _utc_now

    def now(self) -> datetime:
        """Current instant expressed in the business timezone"""
        return as_utc(self._now()).astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def start_of(self, day: date) -> datetime:
        """Midnight of `day` in the business timezone (aware)"""
        return datetime.combine(day, time.min, tzinfo=self.tz)

    def start_of_today(self) -> datetime:
        """Midnight of the current business day (aware)"""
        return self.start_of(self.today())

    def to_business_date(self, value: datetime) -> date:
        """Calendar date of a stored timestamp in the business timezone"""
        return as_utc(value).astimezone(self.tz).date()

    def is_weekend(self, value: Union[date, datetime]) -> bool:
        if isinstance(value, datetime):
            value = self.to_business_date(value)
        return value.weekday() in (SATURDAY, SUNDAY)

    def shift_off_weekend(self, value: Union[date, datetime]) -> Union[date, datetime]:
        """
        Move a weekend date or timestamp forward to the following Monday.

        Saturday shifts +2 days and Sunday +1 day; weekdays come back unchanged.
        Timestamps are classified by their business-timezone weekday and keep
        their time of day.
        """
        if isinstance(value, datetime):
            local = as_utc(value).astimezone(self.tz)
            shift = days_to_next_weekday(local.date())
            if not shift:
                return value
            shifted = datetime.combine(local.date() + timedelta(days=shift), local.timetz())
            return shifted if value.tzinfo is not None else as_utc(shifted).replace(tzinfo=None)
        return value + timedelta(days=days_to_next_weekday(value))

    def effective_timestamp(self, on_date: Optional[date] = None) -> datetime:
        """
        Timestamp an adjustment is attributed to.

        Uses the current business time of day, on `on_date` when given, and
        pushes weekend dates to Monday.
        """
        now = self.now()
        if on_date is not None:
            now = datetime.combine(on_date, now.timetz())
        return self.shift_off_weekend(now)
