"""Decoding of raw remote event records.

Booking summaries follow a fixed textual convention:

    "<kind> : <learnerName>(<jlid>) : <teacherName>(<teacherUid>)"

Identifiers are recovered from that text only. Everything here degrades to
"N/A" fields instead of raising, so a malformed record never aborts a render.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator

from src.slotgrid.logging import get_logger
from src.slotgrid.models import CancelReason

log = get_logger(__name__)

NOT_AVAILABLE = "N/A"
SEGMENT_SEPARATOR = " : "

PAREN_TOKEN = re.compile(r"\(([^)]+)\)")
LEARNER_ID_TOKEN = re.compile(r"\bJL[A-Za-z0-9]+\b")
TEACHER_ID_TOKEN = re.compile(r"\bTJL[A-Za-z0-9]+\b")

# Summary markers for rows that are no longer live bookings
_CANCELLED_MARKERS: tuple[str, ...] = tuple(reason.value for reason in CancelReason)


class EventStatus(str, Enum):
    AVAILABILITY = "availability"
    WEEK_OFF = "week_off"
    CANCELLED = "cancelled"
    BOOKED = "booked"


class EventRecord(BaseModel):
    """A raw event flattened out of the date -> time -> events response."""

    model_config = {"extra": "allow"}

    date: str | None = None
    time: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    summary: str = ""
    creator: str | None = None
    calendar_id: str | None = None
    attendees: list[Any] = []

    @field_validator("start_time", "end_time", "creator", "calendar_id", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str | None:
        return None if v in (None, "") else str(v)

    @field_validator("summary", mode="before")
    @classmethod
    def _summary_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class AvailabilityDetails(BaseModel):
    start_time: str | None = None
    end_time: str | None = None
    creator: str | None = None
    summary: str = ""


class BookingDetails(BaseModel):
    start_time: str | None = None
    end_time: str | None = None
    summary: str = ""
    creator: str | None = None
    teacher_id: str = NOT_AVAILABLE  # calendar id of the event
    jlid: str = NOT_AVAILABLE
    learner_name: str = NOT_AVAILABLE
    teacher_name: str = NOT_AVAILABLE
    teacher_uid: str = NOT_AVAILABLE


def _split_name_and_id(segment: str) -> tuple[str, str]:
    """Split "Name(ID)" into ("Name", "ID"); missing parens give N/A for the id."""
    segment = segment.strip()
    match = PAREN_TOKEN.search(segment)
    if not match:
        return segment or NOT_AVAILABLE, NOT_AVAILABLE
    name = PAREN_TOKEN.sub("", segment, count=1).strip()
    return name or NOT_AVAILABLE, match.group(1).strip()


def parse_booking_event(event: EventRecord | dict[str, Any]) -> BookingDetails:
    """Extract learner and teacher name/id from a booking event summary."""
    record = event if isinstance(event, EventRecord) else EventRecord.model_validate(event)
    parts = (record.summary or "").split(SEGMENT_SEPARATOR)

    learner_name = jlid = teacher_name = teacher_uid = NOT_AVAILABLE
    if len(parts) >= 2:
        learner_name, jlid = _split_name_and_id(parts[1])
    if len(parts) >= 3:
        teacher_name, teacher_uid = _split_name_and_id(parts[2])

    return BookingDetails(
        start_time=record.start_time,
        end_time=record.end_time,
        summary=record.summary,
        creator=record.creator,
        teacher_id=record.calendar_id or NOT_AVAILABLE,
        jlid=jlid,
        learner_name=learner_name,
        teacher_name=teacher_name,
        teacher_uid=teacher_uid,
    )


def parse_availability_event(event: EventRecord | dict[str, Any]) -> AvailabilityDetails:
    record = event if isinstance(event, EventRecord) else EventRecord.model_validate(event)
    return AvailabilityDetails(
        start_time=record.start_time,
        end_time=record.end_time,
        creator=record.creator,
        summary=record.summary,
    )


def extract_identifiers(summary: str) -> tuple[list[str], str | None]:
    """Scan a summary for learner (JL...) and teacher (TJL...) tokens.

    Returns:
        (all learner ids in order, first teacher id or None).
    """
    learner_ids = LEARNER_ID_TOKEN.findall(summary or "")
    teacher_ids = TEACHER_ID_TOKEN.findall(summary or "")
    return learner_ids, teacher_ids[0] if teacher_ids else None


def classify_event(summary: str) -> EventStatus:
    """Status of a list-view row derived from its summary text."""
    text = (summary or "").strip()
    lowered = text.lower()
    if "availability" in lowered or "hours" in lowered:
        return EventStatus.AVAILABILITY
    if "week off" in lowered or "off" in lowered.split():
        return EventStatus.WEEK_OFF
    if any(marker in text for marker in _CANCELLED_MARKERS):
        return EventStatus.CANCELLED
    return EventStatus.BOOKED


def _sort_key(record: EventRecord) -> datetime:
    raw = record.start_time or record.date or ""
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return datetime.max
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def flatten_event_grid(data: Any) -> list[EventRecord]:
    """Flatten a booking-details response into records sorted by start time.

    Accepts either a bare list of events or the ``date -> time -> {"events": [...]}``
    mapping; in the latter each record is stamped with its date and time.
    """
    records: list[EventRecord] = []
    if not data:
        return records
    if isinstance(data, list):
        records.extend(EventRecord.model_validate(e) for e in data if isinstance(e, dict))
    elif isinstance(data, dict):
        for day, time_slots in data.items():
            if not isinstance(time_slots, dict):
                continue
            for time, slot in time_slots.items():
                events = slot.get("events") if isinstance(slot, dict) else None
                if not isinstance(events, list):
                    continue
                for event in events:
                    if isinstance(event, dict):
                        records.append(
                            EventRecord.model_validate({**event, "date": day, "time": time})
                        )
    log.debug("events_flattened", count=len(records))
    return sorted(records, key=_sort_key)


def events_for_slot(data: Any, day: str, time: str) -> list[EventRecord]:
    """Events of one (date, time) cell from a booking-details response."""
    return [r for r in flatten_event_grid(data) if r.date == day and r.time == time]
