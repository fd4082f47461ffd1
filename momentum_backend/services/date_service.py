"""
Date calculation service.
Handles UTC normalization, weekly goal periods and end-of-day boundaries.
"""
from datetime import datetime, timedelta, timezone, date

from momentum_backend.constants import DAYS_PER_PERIOD


def utcnow() -> datetime:
    """Current time as naive UTC (the storage format of every timestamp)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def to_naive_utc(dt: datetime) -> datetime:
        """
        Convert a datetime to naive UTC.

        Aware datetimes are converted to UTC; naive ones are assumed to
        already be UTC.
        """
        if dt.tzinfo is not None:
            return dt.astimezone(timezone.utc).replace(tzinfo=None)
        return dt

    @staticmethod
    def period_index(start_date: date, at: datetime) -> int:
        """
        Index of the weekly period containing `at`, counted from start_date.

        Periods are relative to the goal start date, not calendar weeks:
        period 0 covers start_date .. start_date + 6 days.

        Args:
            start_date: Goal start date
            at: Moment to evaluate (naive UTC)

        Returns:
            Period index (negative if `at` precedes start_date)
        """
        elapsed_days = (at.date() - start_date).days
        return elapsed_days // DAYS_PER_PERIOD

    @staticmethod
    def period_range(start_date: date, index: int) -> tuple[datetime, datetime]:
        """Get datetime range [start, end) of a weekly period"""
        period_start = datetime.combine(
            start_date + timedelta(days=index * DAYS_PER_PERIOD), datetime.min.time()
        )
        return period_start, period_start + timedelta(days=DAYS_PER_PERIOD)

    @staticmethod
    def end_of_day(dt: datetime) -> datetime:
        """Midnight following the day of `dt`"""
        return datetime.combine(dt.date() + timedelta(days=1), datetime.min.time())
