"""
Date calculation service.
Local wall-clock day boundaries and focus period day math.
All "day" logic uses the server-local clock; users carry no timezone.
"""
import calendar
from datetime import datetime, timedelta, date
from typing import Optional

from focusbot.constants import FOCUS_PERIOD_DAYS


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def resolve(now: Optional[datetime]) -> datetime:
        """Use the given instant, or the current local time"""
        return now if now is not None else datetime.now()

    @staticmethod
    def start_of_day(dt: datetime) -> datetime:
        """
        Normalize datetime to local midnight.

        Args:
            dt: Datetime to normalize

        Returns:
            Datetime set to midnight of the same calendar day
        """
        return datetime.combine(dt.date(), datetime.min.time())

    @staticmethod
    def get_day_range(target_date: date) -> tuple[datetime, datetime]:
        """Get datetime range for a full day (midnight to midnight)"""
        day_start = datetime.combine(target_date, datetime.min.time())
        day_end = day_start + timedelta(days=1)
        return day_start, day_end

    @staticmethod
    def period_window(now: datetime) -> tuple[datetime, datetime]:
        """
        Window for a period started at `now`.

        Returns:
            (start, end) where start is today's midnight and end is 14 days later
        """
        start = DateService.start_of_day(now)
        return start, start + timedelta(days=FOCUS_PERIOD_DAYS)

    @staticmethod
    def day_number(start: datetime, end: datetime, now: datetime) -> int:
        """
        Current day within a period, 1-based.

        Returns 0 before the period starts and never more than 14.
        """
        elapsed = now - start
        if elapsed < timedelta(0):
            return 0
        day = int(elapsed.total_seconds() // 3600) // 24 + 1
        return min(day, FOCUS_PERIOD_DAYS)

    @staticmethod
    def days_remaining(end: datetime, now: datetime) -> int:
        """Whole days left until `end`, never negative"""
        remaining = end - now
        if remaining < timedelta(0):
            return 0
        return int(remaining.total_seconds() // 3600) // 24

    @staticmethod
    def previous_month_range(now: datetime) -> tuple[datetime, datetime]:
        """
        Range covering the calendar month before `now`.

        Example: now=2026-03-01 09:00 -> (2026-02-01 00:00, 2026-03-01 00:00)
        """
        end = datetime(now.year, now.month, 1)
        if now.month == 1:
            return datetime(now.year - 1, 12, 1), end
        return datetime(now.year, now.month - 1, 1), end

    @staticmethod
    def months_before(now: datetime, months: int) -> datetime:
        """
        Same wall-clock time `months` calendar months earlier.

        Example: now=2026-03-31 12:00, months=1 -> 2026-02-28 12:00
        """
        index = now.year * 12 + (now.month - 1) - months
        year, month = divmod(index, 12)
        month += 1
        day = min(now.day, calendar.monthrange(year, month)[1])
        return now.replace(year=year, month=month, day=day)
