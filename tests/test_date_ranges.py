import datetime

import pytest

from connectors.shopware_connector import format_utc
from date_ranges import (
    MODE_CUSTOM,
    MODE_LAST_3_MONTHS,
    MODE_LAST_7_DAYS,
    MODE_MONTH_TO_DATE,
    MODE_TODAY,
    custom_range,
    resolve_range,
    today_range,
)

NOW = datetime.datetime(2024, 5, 31, 18, 45, 12)


def test_today_spans_local_day():
    start, end = today_range(NOW)

    assert start == datetime.datetime(2024, 5, 31, 0, 0, 0)
    assert end == datetime.datetime(2024, 5, 31, 23, 59, 59)
    assert format_utc(start) == '2024-05-31T00:00:00+00:00'
    assert format_utc(end) == '2024-05-31T23:59:59+00:00'


def test_custom_uses_day_bounds():
    start, end = custom_range(datetime.date(2024, 1, 1), datetime.date(2024, 1, 15))

    assert start == datetime.datetime(2024, 1, 1, 0, 0, 0)
    assert end == datetime.datetime(2024, 1, 15, 23, 59, 59)


def test_inverted_custom_range_is_not_validated():
    start, end = custom_range(datetime.date(2024, 2, 1), datetime.date(2024, 1, 1))
    assert start > end


@pytest.mark.parametrize('mode, first_day', [
    (MODE_TODAY, datetime.date(2024, 5, 31)),
    (MODE_LAST_7_DAYS, datetime.date(2024, 5, 25)),
    (MODE_MONTH_TO_DATE, datetime.date(2024, 5, 1)),
    (MODE_LAST_3_MONTHS, datetime.date(2024, 2, 29)),
])
def test_presets_end_today(mode, first_day):
    start, end = resolve_range(mode, NOW)

    assert start == datetime.datetime.combine(first_day, datetime.time(0, 0, 0))
    assert end == datetime.datetime(2024, 5, 31, 23, 59, 59)


def test_custom_mode_requires_both_dates():
    with pytest.raises(ValueError):
        resolve_range(MODE_CUSTOM, NOW, custom_start=datetime.date(2024, 5, 1))


def test_unknown_mode():
    with pytest.raises(ValueError):
        resolve_range('yesterday', NOW)
