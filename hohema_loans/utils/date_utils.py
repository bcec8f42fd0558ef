"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def next_month_repayment_date(from_date: date, repayment_day: int) -> date:
    """Repayment date in the month after from_date, clamped to the month's length"""
    year = from_date.year + (1 if from_date.month == 12 else 0)
    month = 1 if from_date.month == 12 else from_date.month + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(repayment_day, last_day))
