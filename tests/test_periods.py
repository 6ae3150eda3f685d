"""Tests for candle window arithmetic."""

from datetime import datetime, timedelta, timezone

import pytest

from market_gateway.core.periods import (
    add_interval_ticks,
    ensure_utc,
    single_bucket_window,
    window_ticks,
)
from market_gateway.models import PricePeriod

START = datetime(2021, 3, 10, tzinfo=timezone.utc)


class TestWindowTicks:
    @pytest.mark.parametrize("period", [PricePeriod.DAY, PricePeriod.MONTH])
    def test_calendar_periods_advance_two_ticks(self, period):
        assert window_ticks(period) == 2

    @pytest.mark.parametrize("period", [PricePeriod.SEC, PricePeriod.MINUTE, PricePeriod.HOUR])
    def test_sub_day_periods_advance_one_tick(self, period):
        assert window_ticks(period) == 1


class TestSingleBucketWindow:
    def test_day_window(self):
        assert single_bucket_window(START, PricePeriod.DAY) == (
            START, datetime(2021, 3, 12, tzinfo=timezone.utc)
        )

    def test_minute_window(self):
        assert single_bucket_window(START, PricePeriod.MINUTE) == (
            START, datetime(2021, 3, 10, 0, 1, tzinfo=timezone.utc)
        )

    def test_hour_and_second_windows(self):
        assert single_bucket_window(START, PricePeriod.HOUR)[1] == START + timedelta(hours=1)
        assert single_bucket_window(START, PricePeriod.SEC)[1] == START + timedelta(seconds=1)

    def test_month_window_is_calendar_aware(self):
        start = datetime(2021, 1, 31, tzinfo=timezone.utc)
        assert single_bucket_window(start, PricePeriod.MONTH)[1] == datetime(2021, 3, 31, tzinfo=timezone.utc)

    def test_naive_start_is_treated_as_utc(self):
        frm, to = single_bucket_window(datetime(2021, 3, 10), PricePeriod.DAY)
        assert frm == START
        assert to.tzinfo is not None


def test_add_interval_ticks_multiplies_step():
    assert add_interval_ticks(START, 3, PricePeriod.HOUR) == START + timedelta(hours=3)


def test_ensure_utc_converts_offsets():
    moment = datetime(2021, 3, 10, 3, 0, tzinfo=timezone(timedelta(hours=3)))
    assert ensure_utc(moment) == START
    assert ensure_utc(moment).utcoffset() == timedelta(0)
