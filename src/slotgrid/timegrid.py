"""Fixed time catalog and Monday-first week windows.

The engine runs on one catalog for every view, chosen by
``EngineConfig.slot_granularity_minutes``: 24 hourly slots ("00:00".."23:00")
or 48 half-hour slots ("00:00".."23:30"). Half-hour keys arriving while the
engine is hourly are mapped onto their containing hour with downsample_time().
"""

import calendar
from datetime import date, timedelta

HOURLY = 60
HALF_HOURLY = 30


def catalog_times(granularity_minutes: int = HOURLY) -> list[str]:
    """Return the ordered time-of-day catalog covering a full day.

    Args:
        granularity_minutes: 60 for the 24-slot catalog, 30 for the 48-slot one.

    Returns:
        List of "HH:MM" strings starting at "00:00".

    Raises:
        ValueError: If the granularity is not 30 or 60.
    """
    if granularity_minutes not in (HOURLY, HALF_HOURLY):
        raise ValueError(f"Unsupported granularity: {granularity_minutes}")
    return [
        f"{minutes // 60:02d}:{minutes % 60:02d}"
        for minutes in range(0, 24 * 60, granularity_minutes)
    ]


def downsample_time(time: str, granularity_minutes: int = HOURLY) -> str:
    """Map an "HH:MM" value onto the catalog bucket that contains it."""
    hour, minute = (int(part) for part in time.split(":"))
    minute -= minute % granularity_minutes
    return f"{hour:02d}:{minute:02d}"


def week_dates_of(reference: date) -> list[date]:
    """Return the 7 dates of the Monday-first week containing ``reference``.

    A Sunday maps to the Monday six days earlier.
    """
    monday = reference - timedelta(days=reference.weekday())
    return [monday + timedelta(days=offset) for offset in range(7)]


def current_week_start(today: date) -> date:
    return week_dates_of(today)[0]


def is_same_week(first: date, second: date) -> bool:
    return week_dates_of(first)[0] == week_dates_of(second)[0]


def month_range(day: date) -> tuple[date, date]:
    """First and last calendar day of the month containing ``day``."""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def list_view_range(week_start: date, today: date) -> tuple[date, date]:
    """Date range for the list view: displayed week start through end of this month.

    When the displayed week starts after the current month ends, the range
    runs to the end of the week instead so it never inverts.
    """
    start = week_dates_of(week_start)[0]
    end = month_range(today)[1]
    if end < start:
        end = start + timedelta(days=6)
    return start, end


def format_display_date(day: date) -> str:
    """DD-MM-YYYY."""
    return day.strftime("%d-%m-%Y")


def format_date_ddmmmyyyy(day: date) -> str:
    """DD-Mon-YYYY, e.g. 23-Jul-2025."""
    return day.strftime("%d-%b-%Y")


def time_range_label(start_time: str, hours: int = 1) -> str:
    """Label a slot as "HH:MM - HH:MM", wrapping past midnight."""
    hour, minute = (int(part) for part in start_time.split(":"))
    end_hour = (hour + hours) % 24
    return f"{hour:02d}:{minute:02d} - {end_hour:02d}:{minute:02d}"
