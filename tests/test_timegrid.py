from datetime import date

import pytest

from src.slotgrid.timegrid import (
    catalog_times,
    current_week_start,
    downsample_time,
    format_date_ddmmmyyyy,
    format_display_date,
    is_same_week,
    list_view_range,
    month_range,
    time_range_label,
    week_dates_of,
)


def test_hourly_catalog():
    times = catalog_times(60)
    assert len(times) == 24
    assert times[0] == "00:00"
    assert times[-1] == "23:00"


def test_half_hour_catalog():
    times = catalog_times(30)
    assert len(times) == 48
    assert times[1] == "00:30"
    assert times[-1] == "23:30"


def test_unsupported_granularity():
    with pytest.raises(ValueError):
        catalog_times(15)


def test_downsample_time():
    assert downsample_time("17:30") == "17:00"
    assert downsample_time("17:45", 30) == "17:30"
    assert downsample_time("08:00") == "08:00"


def test_week_is_monday_first():
    week = week_dates_of(date(2025, 7, 23))
    assert week[0] == date(2025, 7, 21)
    assert week[-1] == date(2025, 7, 27)
    assert len(week) == 7


def test_sunday_maps_to_previous_monday():
    assert current_week_start(date(2025, 7, 27)) == date(2025, 7, 21)


def test_week_crossing_year_boundary():
    week = week_dates_of(date(2025, 1, 1))
    assert week[0] == date(2024, 12, 30)
    assert is_same_week(date(2024, 12, 31), date(2025, 1, 5))
    assert not is_same_week(date(2025, 1, 5), date(2025, 1, 6))


def test_month_range_leap_year():
    assert month_range(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))


def test_list_view_range_runs_to_end_of_current_month():
    assert list_view_range(date(2025, 7, 21), date(2025, 7, 23)) == (
        date(2025, 7, 21),
        date(2025, 7, 31),
    )


def test_list_view_range_never_inverts():
    assert list_view_range(date(2025, 9, 1), date(2025, 7, 23)) == (
        date(2025, 9, 1),
        date(2025, 9, 7),
    )


def test_date_formats():
    assert format_display_date(date(2025, 7, 3)) == "03-07-2025"
    assert format_date_ddmmmyyyy(date(2025, 7, 3)) == "03-Jul-2025"


def test_time_range_label_wraps_midnight():
    assert time_range_label("17:00") == "17:00 - 18:00"
    assert time_range_label("23:00") == "23:00 - 00:00"
