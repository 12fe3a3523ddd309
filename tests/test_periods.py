"""
Test period windows and keys.
"""

from datetime import date, datetime, timezone

from stakeflow.services.periods import (
    daily_period_key, daily_window, monthly_window, period_days, previous_period_start,
    utc_day_window, weekly_period_key, weekly_window,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


WEDNESDAY = utc(2024, 6, 12, 10, 30)


def test_utc_day_window():
    start, end = utc_day_window(WEDNESDAY)
    assert start == utc(2024, 6, 12)
    assert end == utc(2024, 6, 13)


def test_daily_window_is_yesterday():
    start, end = daily_window(WEDNESDAY)
    assert start == utc(2024, 6, 11)
    assert end == utc(2024, 6, 11, 23, 59, 59, 999999)


def test_weekly_window_is_last_complete_sunday_to_saturday():
    start, end = weekly_window(WEDNESDAY)
    assert start == utc(2024, 6, 2)
    assert start.weekday() == 6
    assert end == utc(2024, 6, 8, 23, 59, 59, 999999)
    assert end.weekday() == 5


def test_weekly_window_on_sunday_covers_previous_week():
    start, end = weekly_window(utc(2024, 6, 9, 2, 0))
    assert start == utc(2024, 6, 2)
    assert end.date() == date(2024, 6, 8)


def test_monthly_window_is_previous_month():
    start, end = monthly_window(utc(2024, 3, 1, 3, 0))
    assert start == utc(2024, 2, 1)
    assert end == utc(2024, 2, 29, 23, 59, 59, 999999)


def test_monthly_window_wraps_year():
    start, end = monthly_window(utc(2024, 1, 1, 3, 0))
    assert start == utc(2023, 12, 1)
    assert end.date() == date(2023, 12, 31)


def test_previous_period_start():
    assert previous_period_start("daily", utc(2024, 6, 11)) == utc(2024, 6, 10)
    assert previous_period_start("weekly", utc(2024, 6, 2)) == utc(2024, 5, 26)
    assert previous_period_start("monthly", utc(2024, 3, 1)) == utc(2024, 2, 1)
    assert previous_period_start("monthly", utc(2024, 1, 1)) == utc(2023, 12, 1)


def test_period_days():
    assert period_days(*daily_window(WEDNESDAY)) == 1
    assert period_days(*weekly_window(WEDNESDAY)) == 7
    assert period_days(*monthly_window(utc(2024, 3, 1))) == 29


def test_period_keys():
    assert daily_period_key(WEDNESDAY) == "2024-06-12"
    assert weekly_period_key(WEDNESDAY) == "2024-W24"
    assert weekly_period_key(utc(2024, 12, 30)) == "2025-W01"
