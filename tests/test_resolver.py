from datetime import date

import pytest

from src.slotgrid.directory import TeacherDirectory
from src.slotgrid.models import CellClass, RemoteSlot, SlotSource, Teacher, parse_remote_summary
from src.slotgrid.resolver import (
    align_to_catalog,
    classify_cell,
    is_on_leave,
    is_week_off,
    resolve,
    resolve_for_candidate_teacher,
)
from src.slotgrid.store import ScheduleStore

DAY = date(2025, 7, 23)


@pytest.fixture
def directory():
    return TeacherDirectory(
        [
            Teacher(id="1", uid="UA", full_name="Anna"),
            Teacher(id="2", uid="UB", full_name="Ben"),
            Teacher(id="9", uid="T9", full_name="Tom"),
        ]
    )


@pytest.fixture
def store(directory):
    store = ScheduleStore()
    store.add_teacher(DAY, "17:00", directory.by_uid("UA"))
    store.add_teacher(DAY, "17:00", directory.by_uid("UB"))
    return store


def test_remote_wins_over_local(store, directory):
    summary = {DAY: {"17:00": RemoteSlot(availability=3, bookings=1, uid="T9")}}
    counts = resolve(DAY, "17:00", summary, store, directory)
    assert (counts.available, counts.booked) == (3, 1)
    assert counts.source == SlotSource.REMOTE
    assert counts.owner_teacher_id == "T9"
    assert counts.teacher_details.full_name == "Tom"


def test_local_fallback(store, directory):
    counts = resolve(DAY, "17:00", {}, store, directory)
    assert (counts.available, counts.booked) == (2, 0)
    assert counts.source == SlotSource.LOCAL
    assert counts.owner_teacher_id == "UA"


def test_empty_slot_is_zero_local(store, directory):
    counts = resolve(DAY, "03:00", {}, store, directory)
    assert (counts.available, counts.booked, counts.source) == (0, 0, SlotSource.LOCAL)
    assert counts.owner_teacher_id is None


def test_remote_zero_counts_still_win(store, directory):
    summary = {DAY: {"17:00": RemoteSlot()}}
    counts = resolve(DAY, "17:00", summary, store, directory)
    assert (counts.available, counts.booked, counts.source) == (0, 0, SlotSource.REMOTE)


@pytest.mark.parametrize(
    ("available", "booked", "expected"),
    [
        (0, 0, CellClass.NEUTRAL),
        (0, 2, CellClass.ALERT),
        (2, 2, CellClass.ALERT),
        (3, 5, CellClass.ALERT),
        (2, 1, CellClass.OPEN),
    ],
)
def test_classify_cell(available, booked, expected):
    assert classify_cell(available, booked) == expected


def test_candidate_teacher(directory):
    summary = {
        DAY: {
            "17:00": RemoteSlot(availability=1, bookings=0, uid="T9"),
            "18:00": RemoteSlot(uid="T9"),
            "19:00": RemoteSlot(availability=4, uid="UA"),
        }
    }
    counts = resolve_for_candidate_teacher(DAY, "17:00", "T9", summary, directory)
    assert counts.available == 1
    zero = resolve_for_candidate_teacher(DAY, "18:00", "T9", summary, directory)
    assert (zero.available, zero.booked) == (0, 0)
    assert resolve_for_candidate_teacher(DAY, "19:00", "T9", summary, directory) is None
    assert resolve_for_candidate_teacher(DAY, "20:00", "T9", summary, directory) is None
    assert resolve_for_candidate_teacher(DAY, "17:00", "", summary, directory) is None


def test_parse_remote_summary_skips_junk():
    summary = parse_remote_summary(
        {
            "2025-07-23": {"17:00": {"availability": "2", "bookings": None, "uid": 42}},
            "not-a-date": {"17:00": {"availability": 1}},
            "2025-07-24": "junk",
        }
    )
    assert list(summary) == [DAY]
    slot = summary[DAY]["17:00"]
    assert (slot.availability, slot.bookings, slot.uid) == (2, 0, "42")


def test_week_off_and_leave():
    summary = {DAY: {"00:00": RemoteSlot(week_off=1)}}
    assert is_week_off(DAY, summary)
    assert not is_week_off(date(2025, 7, 24), summary)
    leaves = {"success": True, "leaves": {"2025-07-23": {"id": 5}}}
    assert is_on_leave(DAY, leaves)
    assert not is_on_leave(date(2025, 7, 24), leaves)
    assert not is_on_leave(DAY, None)


def test_half_hour_keys_align_to_hourly_catalog():
    summary = {
        DAY: {
            "17:30": RemoteSlot(availability=1, uid="T9"),
            "18:00": RemoteSlot(availability=2, uid="T9"),
            "18:30": RemoteSlot(availability=5, uid="T9"),
        }
    }
    aligned = align_to_catalog(summary)
    assert sorted(aligned[DAY]) == ["17:00", "18:00"]
    assert aligned[DAY]["17:00"].availability == 1
    assert aligned[DAY]["18:00"].availability == 2
    assert align_to_catalog(summary, 30) == summary


def test_parse_remote_summary_skips_unreadable_counts():
    summary = parse_remote_summary(
        {
            "2025-07-23": {
                "17:00": {"availability": "n/a", "uid": "T9"},
                "18:00": {"availability": [], "uid": "T9"},
                "19:00": {"availability": -2, "bookings": -1, "uid": "T9"},
            }
        }
    )
    assert list(summary[DAY]) == ["19:00"]
    slot = summary[DAY]["19:00"]
    assert (slot.availability, slot.bookings) == (0, 0)
