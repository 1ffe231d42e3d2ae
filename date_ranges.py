"""Order-date windows for the dashboard filter panel.

Every window runs from 00:00:00 on its first day to 23:59:59 on its last day,
in local wall-clock time. The connector formats these as fixed-offset strings
without shifting the calendar date.
"""
import datetime
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta

DAY_START = datetime.time(0, 0, 0)
DAY_END = datetime.time(23, 59, 59)

MODE_TODAY = 'today'
MODE_CUSTOM = 'custom'
MODE_LAST_7_DAYS = 'last_7_days'
MODE_MONTH_TO_DATE = 'month_to_date'
MODE_LAST_3_MONTHS = 'last_3_months'

MODE_LABELS = {
    MODE_TODAY: 'Heute',
    MODE_LAST_7_DAYS: 'Letzte 7 Tage',
    MODE_MONTH_TO_DATE: 'Dieser Monat',
    MODE_LAST_3_MONTHS: 'Letzte 3 Monate',
    MODE_CUSTOM: 'Zeitraum',
}

DateWindow = Tuple[datetime.datetime, datetime.datetime]


def custom_range(start_date: datetime.date, end_date: datetime.date) -> DateWindow:
    # An inverted range is passed through; the shop simply matches nothing.
    return datetime.datetime.combine(start_date, DAY_START), datetime.datetime.combine(end_date, DAY_END)


def today_range(now: Optional[datetime.datetime] = None) -> DateWindow:
    today = (now or datetime.datetime.now()).date()
    return custom_range(today, today)


def resolve_range(
    mode: str,
    now: Optional[datetime.datetime] = None,
    custom_start: Optional[datetime.date] = None,
    custom_end: Optional[datetime.date] = None,
) -> DateWindow:
    """Return the (start, end) window for a filter mode."""
    now = now or datetime.datetime.now()
    today = now.date()
    if mode == MODE_TODAY:
        return today_range(now)
    if mode == MODE_CUSTOM:
        if custom_start is None or custom_end is None:
            raise ValueError('custom mode needs both a start and an end date')
        return custom_range(custom_start, custom_end)
    if mode == MODE_LAST_7_DAYS:
        return custom_range(today - datetime.timedelta(days=6), today)
    if mode == MODE_MONTH_TO_DATE:
        return custom_range(today.replace(day=1), today)
    if mode == MODE_LAST_3_MONTHS:
        return custom_range(today - relativedelta(months=3), today)
    raise ValueError(f'Unknown date mode: {mode!r}')
