"""
Calendar helpers: the business day used for budget pacing and the
monthly billing period arithmetic used by subscription renewal.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from buscai.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def business_day_range(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> tuple[datetime, datetime]:
    """
    [start, end) of the local calendar day containing `now`, in UTC.
    For America/Sao_Paulo the day starts at 03:00 UTC.
    """
    tz = ZoneInfo(tz_name or settings.TIMEZONE)
    now = now or utcnow()
    local = now.astimezone(tz)
    start_local = datetime.combine(local.date(), time.min, tzinfo=tz)
    end_local = start_local + timedelta(days=1)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


def business_date(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> date:
    return (now or utcnow()).astimezone(ZoneInfo(tz_name or settings.TIMEZONE)).date()


def add_months(value: datetime, months: int = 1) -> datetime:
    """Shift by whole months keeping the day, clamped to the month length."""
    return value + relativedelta(months=months)
