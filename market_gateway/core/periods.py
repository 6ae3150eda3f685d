"""
Period arithmetic for candle windows.
"""

from datetime import datetime, timezone
from dateutil.relativedelta import relativedelta

from ..models import PricePeriod

_PERIOD_STEPS = {
    PricePeriod.SEC: relativedelta(seconds=1),
    PricePeriod.MINUTE: relativedelta(minutes=1),
    PricePeriod.HOUR: relativedelta(hours=1),
    PricePeriod.DAY: relativedelta(days=1),
    PricePeriod.MONTH: relativedelta(months=1),
}

# Calendar buckets are numbered from 1 by the candle backend.
CALENDAR_PERIODS = frozenset({PricePeriod.DAY, PricePeriod.MONTH})


def ensure_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def add_interval_ticks(moment: datetime, ticks: int, period: PricePeriod) -> datetime:
    """Advance ``moment`` by ``ticks`` buckets of ``period``."""
    return moment + _PERIOD_STEPS[period] * ticks


def window_ticks(period: PricePeriod) -> int:
    """Number of ticks between the start and the exclusive end of a single-bucket window."""
    return 2 if period in CALENDAR_PERIODS else 1


def single_bucket_window(start: datetime, period: PricePeriod) -> tuple:
    """Half-open ``[from, to)`` window selecting the bucket that contains ``start``."""
    start = ensure_utc(start)
    return start, add_interval_ticks(start, window_ticks(period), period)
