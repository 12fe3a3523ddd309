"""
Calendar windows and period keys. All values are UTC.
"""

from datetime import date, datetime, timedelta
from typing import Tuple

from stakeflow.models import PeriodType
from stakeflow.utils.time import start_of_day


Window = Tuple[datetime, datetime]

ONE_DAY = timedelta(days=1)
END_OF_DAY = ONE_DAY - timedelta(microseconds=1)


def utc_day_window(now: datetime) -> Window:
    """Half-open [midnight, next midnight) window containing `now`."""
    start = start_of_day(now.date())
    return start, start + ONE_DAY


def daily_window(now: datetime) -> Window:
    """Yesterday, inclusive of both ends."""
    start = start_of_day(now.date() - ONE_DAY)
    return start, start + END_OF_DAY


def weekly_window(now: datetime) -> Window:
    """The last complete Sunday to Saturday week, inclusive."""
    days_since_sunday = (now.weekday() + 1) % 7
    last_sunday = now.date() - timedelta(days=days_since_sunday)
    start = start_of_day(last_sunday - timedelta(days=7))
    return start, start + timedelta(days=6) + END_OF_DAY


def first_of_previous_month(day: date) -> date:
    first = day.replace(day=1)
    return (first - ONE_DAY).replace(day=1)


def monthly_window(now: datetime) -> Window:
    """The last full calendar month, inclusive."""
    first_this_month = now.date().replace(day=1)
    start = start_of_day(first_of_previous_month(now.date()))
    return start, start_of_day(first_this_month) - timedelta(microseconds=1)


def window_for(period_type: str, now: datetime) -> Window:
    if period_type == PeriodType.DAILY.value:
        return daily_window(now)
    if period_type == PeriodType.WEEKLY.value:
        return weekly_window(now)
    if period_type == PeriodType.MONTHLY.value:
        return monthly_window(now)
    raise ValueError(f"Unknown period type: {period_type}")


def previous_period_start(period_type: str, period_start: datetime) -> datetime:
    """Start of the period immediately before the one starting at `period_start`."""
    if period_type == PeriodType.DAILY.value:
        return period_start - ONE_DAY
    if period_type == PeriodType.WEEKLY.value:
        return period_start - timedelta(days=7)
    if period_type == PeriodType.MONTHLY.value:
        return start_of_day(first_of_previous_month(period_start.date()))
    raise ValueError(f"Unknown period type: {period_type}")


def period_days(period_start: datetime, period_end: datetime) -> int:
    """Whole days covered by an inclusive window (1, 7, 28-31)."""
    return max(1, round((period_end - period_start).total_seconds() / ONE_DAY.total_seconds()))


def daily_period_key(moment: datetime) -> str:
    """YYYY-MM-DD of the UTC day."""
    return moment.date().isoformat()


def weekly_period_key(moment: datetime) -> str:
    """ISO week as YYYY-Www."""
    year, week, _ = moment.isocalendar()
    return f"{year}-W{week:02d}"
