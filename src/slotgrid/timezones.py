"""Conversion between UTC-anchored slot keys and a GMT-offset display timezone.

Display timezones come from the remote list as strings like "(GMT+05:30) IST".
Only the fixed offset is used; daylight-saving rules are not applied, the feed
already encodes the offset it wants shown.
"""

import re
from datetime import date, datetime, time, timedelta

from pydantic import BaseModel, ConfigDict

from src.slotgrid.errors import MalformedTimezoneError
from src.slotgrid.logging import get_logger

log = get_logger(__name__)

OFFSET_PATTERN = re.compile(r"GMT([+-])(\d{2}):(\d{2})")


class TimezoneDescriptor(BaseModel):
    """Parsed display timezone: the raw label and its signed offset."""

    model_config = ConfigDict(frozen=True)

    label: str
    offset_hours: int  # signed, e.g. -8
    offset_minutes: int  # signed, same sign as the hours, e.g. -30

    @property
    def offset(self) -> timedelta:
        return timedelta(hours=self.offset_hours, minutes=self.offset_minutes)


def parse_timezone(descriptor: str | TimezoneDescriptor) -> TimezoneDescriptor:
    """Parse the GMT offset out of a display timezone string.

    The sign applies to both hours and minutes, so "GMT-03:30" is
    three and a half hours behind UTC.

    Args:
        descriptor: Display string such as "(GMT-08:00) Pacific Time".

    Returns:
        TimezoneDescriptor carrying the signed offset.

    Raises:
        MalformedTimezoneError: If no GMT(+|-)HH:MM pattern is present.
    """
    if isinstance(descriptor, TimezoneDescriptor):
        return descriptor
    match = OFFSET_PATTERN.search(descriptor or "")
    if not match:
        log.warning("timezone_parse_failed", descriptor=descriptor)
        raise MalformedTimezoneError(descriptor)
    sign = -1 if match.group(1) == "-" else 1
    return TimezoneDescriptor(
        label=descriptor,
        offset_hours=sign * int(match.group(2)),
        offset_minutes=sign * int(match.group(3)),
    )


def is_valid_timezone(descriptor: str) -> bool:
    return OFFSET_PATTERN.search(descriptor or "") is not None


def _combine(day: date, hhmm: str) -> datetime:
    hour, minute = (int(part) for part in hhmm.split(":"))
    return datetime.combine(day, time(hour, minute))


def to_display_key(
    utc_date: date, utc_time: str, timezone: str | TimezoneDescriptor
) -> tuple[date, str]:
    """Convert a UTC slot key to the display wall clock, keeping the date.

    Returns:
        (local date, local "HH:MM"), with day rollover applied.
    """
    tz = parse_timezone(timezone)
    local = _combine(utc_date, utc_time) + tz.offset
    return local.date(), local.strftime("%H:%M")


def to_display(utc_date: date, utc_time: str, timezone: str | TimezoneDescriptor) -> str:
    """Render a UTC slot key as wall-clock time-of-day in the display timezone.

    The converted instant may fall on the previous or next day; callers that
    need the date use to_display_key().
    """
    return to_display_key(utc_date, utc_time, timezone)[1]


def to_utc(
    local_date: date, local_time: str, timezone: str | TimezoneDescriptor
) -> tuple[date, str]:
    """Convert a display wall-clock value back to the UTC-anchored slot key.

    Args:
        local_date: Date as shown in the display timezone.
        local_time: "HH:MM" as shown in the display timezone.
        timezone: Display timezone string or parsed descriptor.

    Returns:
        (UTC date, UTC "HH:MM"), crossing day/month/year boundaries as needed.

    Raises:
        MalformedTimezoneError: If the timezone has no parseable GMT offset.
    """
    tz = parse_timezone(timezone)
    utc = _combine(local_date, local_time) - tz.offset
    return utc.date(), utc.strftime("%H:%M")


def format_timezone_for_api(timezone: str) -> str:
    """Replace spaces in the zone name (after the offset) with underscores.

    "(GMT-05:00) New York" -> "(GMT-05:00) New_York"
    """
    match = re.match(r"(.*\)) (.+)", timezone)
    if not match:
        return timezone
    return f"{match.group(1)} {match.group(2).replace(' ', '_')}"


def pick_default_timezone(
    timezones: list[str], preferred_marker: str = "CET"
) -> str | None:
    """Choose the default display timezone from the remote list.

    Prefers an entry naming ``preferred_marker`` with a GMT+ offset,
    otherwise the first entry.
    """
    if not timezones:
        return None
    for tz in timezones:
        if tz == preferred_marker or (preferred_marker in tz and "GMT+" in tz):
            return tz
    return timezones[0]
