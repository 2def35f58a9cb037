"""Slot resolution: one authoritative SlotCounts per (date, time).

Remote summary counts always win over the local fallback schedule; the two
are never summed.
"""

from datetime import date
from typing import Any

from src.slotgrid.directory import TeacherDirectory
from src.slotgrid.models import CellClass, RemoteDaySummary, SlotCounts, SlotSource
from src.slotgrid.store import ScheduleStore
from src.slotgrid.timegrid import HOURLY, downsample_time


def resolve(
    day: date,
    time: str,
    remote_summary: RemoteDaySummary,
    store: ScheduleStore,
    directory: TeacherDirectory,
) -> SlotCounts:
    """Resolve the counts shown for one grid cell.

    Args:
        day: UTC-anchored slot date.
        time: UTC-anchored "HH:MM" slot time.
        remote_summary: Parsed remote feed for the displayed range.
        store: Local fallback schedule.
        directory: Teacher directory used to attach teacher details.

    Returns:
        SlotCounts tagged REMOTE when the feed has the slot, LOCAL otherwise.
    """
    remote = remote_summary.get(day, {}).get(time)
    if remote is not None:
        owner = remote.owner_id
        return SlotCounts(
            available=remote.availability,
            booked=remote.bookings,
            owner_teacher_id=owner,
            teacher_details=directory.lookup(owner),
            source=SlotSource.REMOTE,
        )

    local = store.slot(day, time)
    if local is None:
        return SlotCounts(source=SlotSource.LOCAL)

    first = local.teachers[0] if local.teachers else None
    return SlotCounts(
        available=len(local.teachers),
        booked=len(local.students),
        owner_teacher_id=first.uid if first else None,
        teacher_details=first,
        source=SlotSource.LOCAL,
    )


def resolve_for_candidate_teacher(
    day: date,
    time: str,
    candidate_teacher_uid: str,
    remote_summary: RemoteDaySummary,
    directory: TeacherDirectory | None = None,
) -> SlotCounts | None:
    """Counts for a slot only if it belongs to ``candidate_teacher_uid``.

    Returns None ("no data") when the candidate is unset, the feed has no entry
    for the slot, or the entry belongs to someone else. Zero counts on the
    candidate's own slot come back as a SlotCounts with zeros.
    """
    if not candidate_teacher_uid:
        return None
    remote = remote_summary.get(day, {}).get(time)
    if remote is None:
        return None
    if candidate_teacher_uid not in (remote.teacherid, remote.uid):
        return None
    owner = remote.owner_id
    return SlotCounts(
        available=remote.availability,
        booked=remote.bookings,
        owner_teacher_id=owner,
        teacher_details=directory.lookup(owner) if directory else None,
        source=SlotSource.REMOTE,
    )


def classify_cell(available: int, booked: int) -> CellClass:
    """Colour class of a cell; the all-zero case is checked first."""
    if available == 0 and booked == 0:
        return CellClass.NEUTRAL
    if available == 0 and booked > 0:
        return CellClass.ALERT
    if booked >= available:
        return CellClass.ALERT
    return CellClass.OPEN


def is_week_off(day: date, remote_summary: RemoteDaySummary) -> bool:
    """True if any slot of ``day`` in the feed is flagged week_off."""
    return any(slot.week_off == 1 for slot in remote_summary.get(day, {}).values())


def is_on_leave(day: date, leaves: dict[str, Any] | None) -> bool:
    """True if the teacher-leaves payload holds a leave record for ``day``.

    ``leaves`` is the feed's ``{"success": bool, "leaves": {date: {...}}}`` shape.
    """
    if not leaves or not leaves.get("success") or not leaves.get("leaves"):
        return False
    record = leaves["leaves"].get(day.isoformat())
    return isinstance(record, dict) and bool(record.get("id"))


def align_to_catalog(
    remote_summary: RemoteDaySummary, granularity_minutes: int = HOURLY
) -> RemoteDaySummary:
    """Re-key the feed onto the engine catalog.

    Off-catalog keys ("17:30" on an hourly engine) move to their containing
    bucket unless the feed already has an entry for that bucket.
    """
    aligned: RemoteDaySummary = {}
    for day, times in remote_summary.items():
        slots = {t: s for t, s in times.items() if downsample_time(t, granularity_minutes) == t}
        for time, slot in times.items():
            slots.setdefault(downsample_time(time, granularity_minutes), slot)
        aligned[day] = slots
    return aligned
