from datetime import date

import pytest

from src.slotgrid.models import StudentBookingRef, Teacher
from src.slotgrid.store import ScheduleStore

DAY = date(2025, 7, 23)


def test_day_is_materialized_on_first_touch():
    store = ScheduleStore()
    assert DAY not in store
    slots = store.day(DAY)
    assert DAY in store
    assert list(slots) == store.times
    assert all(not s.teachers and not s.students for s in slots.values())


def test_duplicate_teacher_is_noop():
    store = ScheduleStore()
    teacher = Teacher(id="1", uid="U1")
    assert store.add_teacher(DAY, "17:00", teacher) is True
    assert store.add_teacher(DAY, "17:00", teacher) is False
    assert len(store.slot(DAY, "17:00").teachers) == 1


def test_remove_student():
    store = ScheduleStore()
    store.add_student(DAY, "09:00", StudentBookingRef(id="JL1", name="Alice"))
    assert store.remove_student(DAY, "09:00", "JL1") is True
    assert store.remove_student(DAY, "09:00", "JL1") is False


def test_off_catalog_time():
    store = ScheduleStore()
    assert store.slot(DAY, "17:30") is None
    with pytest.raises(ValueError):
        store.add_teacher(DAY, "17:30", Teacher(id="1"))


def test_half_hour_store_accepts_half_hours():
    store = ScheduleStore(30)
    assert store.add_teacher(DAY, "17:30", Teacher(id="1"))
