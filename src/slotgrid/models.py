"""Pydantic models for schedule data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Calendar dates are always ``datetime.date``; wire strings are parsed once here.
"""

import datetime as dt
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.slotgrid.logging import get_logger

log = get_logger(__name__)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_date(value: Any) -> dt.date:
    """Coerce a boundary representation (date, datetime, ISO string) to a date."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value).strip()[:10])


def check_time(value: str) -> str:
    """Validate an "HH:MM" time-of-day string."""
    if not TIME_PATTERN.match(value):
        raise ValueError(f"time must be HH:MM, got {value!r}")
    return value


class SlotSource(str, Enum):
    REMOTE = "REMOTE"
    LOCAL = "LOCAL"


class CellClass(str, Enum):
    """Derived colour class of a grid cell."""

    NEUTRAL = "neutral"
    ALERT = "alert"
    OPEN = "open"


class CancelReason(str, Enum):
    """Closed set of cancellation / no-show codes accepted by the feed."""

    BREAK_AND_RETURN = "B&R"
    TEACHER_PLANNED = "CBT/PL"  # Cancelled by teacher, planned, prior 48 hours
    TEACHER_UNPLANNED = "CBT/UL"  # Cancelled by teacher, unplanned, within 48 hours
    PARENT_PLANNED = "CBP/PL"
    PARENT_UNPLANNED = "CBP/UL"
    OPS = "CBO"
    NO_SHOW_LEARNER = "NO SHOW - LR"
    NO_SHOW_TEACHER = "NO SHOW - TR"
    MAKE_UP = "MAKE UP"
    MAKE_UP_S = "MAKE UP - S"

    @property
    def is_no_show(self) -> bool:
        return "NO SHOW" in self.value


class TimeSlotKey(BaseModel):
    """A UTC-anchored (date, time) address in the schedule."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    time: str  # "HH:MM" from the engine catalog

    @field_validator("time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        return check_time(v)

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, v: Any) -> dt.date:
        return parse_date(v)


class Teacher(BaseModel):
    """A teacher as returned by the remote directory.

    ``uid`` is the feed's identifier; ``id`` is the legacy local one.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    uid: str | None = None
    full_name: str = ""
    email: str = ""

    @field_validator("id", "uid", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str | None:
        return None if v is None else str(v)

    @field_validator("full_name", "email", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> str:
        return v or ""


class Student(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    jetlearner_id: str
    deal_name: str | None = None
    name: str | None = None
    email: str = ""
    country: str | None = None
    age: int | None = None

    @field_validator("jetlearner_id", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str:
        return str(v)

    @field_validator("email", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> str:
        return v or ""

    @property
    def display_name(self) -> str:
        return self.deal_name or self.name or self.jetlearner_id


class StudentBookingRef(BaseModel):
    """A learner occupying a local schedule slot."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    email: str = ""


class SlotRecord(BaseModel):
    """One catalog time of a local schedule day."""

    time: str
    teachers: list[Teacher] = Field(default_factory=list)
    students: list[StudentBookingRef] = Field(default_factory=list)


class RemoteSlot(BaseModel):
    """Counts for one (date, time) in the remote summary feed."""

    model_config = ConfigDict(extra="allow")

    availability: int = 0
    bookings: int = 0
    uid: str | None = None
    teacherid: str | None = None  # set client-side when the fetch was teacher-filtered
    week_off: int = 0

    @field_validator("availability", "bookings", "week_off", mode="before")
    @classmethod
    def _default_zero(cls, v: Any) -> int:
        try:
            return max(int(v or 0), 0)
        except TypeError as exc:
            raise ValueError(f"count must be a number, got {v!r}") from exc

    @field_validator("uid", "teacherid", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str | None:
        return None if v in (None, "") else str(v)

    @property
    def owner_id(self) -> str | None:
        return self.teacherid or self.uid


# date -> "HH:MM" -> counts
RemoteDaySummary = dict[dt.date, dict[str, RemoteSlot]]


def parse_remote_summary(raw: Any) -> RemoteDaySummary:
    """Parse the wire shape of the summary feed into typed, date-keyed data.

    Entries that are not objects, whose key is not a date, or whose counts
    are not numbers are skipped.
    """
    summary: RemoteDaySummary = {}
    if not isinstance(raw, dict):
        return summary
    for date_key, times in raw.items():
        if not isinstance(times, dict):
            continue
        try:
            day = parse_date(date_key)
        except ValueError:
            continue
        slots: dict[str, RemoteSlot] = {}
        for time, slot in times.items():
            if not isinstance(slot, dict):
                continue
            try:
                slots[time] = RemoteSlot.model_validate(slot)
            except ValidationError as exc:
                log.warning(
                    "remote_slot_skipped", date=day.isoformat(), time=time, errors=exc.error_count()
                )
        summary[day] = slots
    return summary


class SlotCounts(BaseModel):
    """Authoritative counts for one slot, from exactly one source."""

    available: int = 0
    booked: int = 0
    owner_teacher_id: str | None = None
    teacher_details: Teacher | None = None
    source: SlotSource = SlotSource.LOCAL


class ScheduleEntry(BaseModel):
    """A (date, time) pair in the display timezone, collected for a booking."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    time: str

    @field_validator("time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        return check_time(v)

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, v: Any) -> dt.date:
        return parse_date(v)


class OperationStatus(BaseModel):
    """Status of one in-flight or finished remote operation."""

    is_loading: bool = False
    success: bool = False
    error: str | None = None
    data: Any = None

    def start(self) -> None:
        self.is_loading = True
        self.success = False
        self.error = None
        self.data = None

    def succeed(self, data: Any = None) -> None:
        self.is_loading = False
        self.success = True
        self.error = None
        self.data = data

    def fail(self, error: str) -> None:
        self.is_loading = False
        self.success = False
        self.error = error
        self.data = None


class Notice(BaseModel):
    """Transient user-visible message."""

    message: str
    kind: str  # "booking", "cancel", "no-show", "leave"
