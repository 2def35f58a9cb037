"""Local fallback schedule.

An in-memory map of date -> catalog time -> SlotRecord. A date is materialized
with one empty record per catalog time the first time it is touched, and is
kept for the life of the process. The remote feed shadows this store; it is
read only when the feed has nothing for a slot.
"""

from datetime import date

from src.slotgrid.logging import get_logger
from src.slotgrid.models import SlotRecord, StudentBookingRef, Teacher
from src.slotgrid.timegrid import HOURLY, catalog_times

log = get_logger(__name__)


class ScheduleStore:
    """Lazily materialized per-day schedule, mutated only through its methods."""

    def __init__(self, granularity_minutes: int = HOURLY) -> None:
        self.times = catalog_times(granularity_minutes)
        self._days: dict[date, dict[str, SlotRecord]] = {}

    def day(self, day: date) -> dict[str, SlotRecord]:
        """Return every catalog slot for ``day``, materializing it if needed."""
        if day not in self._days:
            self._days[day] = {time: SlotRecord(time=time) for time in self.times}
        return self._days[day]

    def slot(self, day: date, time: str) -> SlotRecord | None:
        """Return the record for (day, time), or None if time is off-catalog."""
        return self.day(day).get(time)

    def _require_slot(self, day: date, time: str) -> SlotRecord:
        record = self.slot(day, time)
        if record is None:
            raise ValueError(f"{time!r} is not a catalog time")
        return record

    def add_teacher(self, day: date, time: str, teacher: Teacher) -> bool:
        """Add a teacher to a slot. Returns False if already present."""
        record = self._require_slot(day, time)
        if any(t.id == teacher.id for t in record.teachers):
            return False
        record.teachers.append(teacher)
        log.debug("local_teacher_added", date=day.isoformat(), time=time, teacher_id=teacher.id)
        return True

    def remove_teacher(self, day: date, time: str, teacher_id: str) -> bool:
        record = self._require_slot(day, time)
        before = len(record.teachers)
        record.teachers = [t for t in record.teachers if t.id != str(teacher_id)]
        return len(record.teachers) != before

    def add_student(self, day: date, time: str, student: StudentBookingRef) -> bool:
        """Add a learner to a slot. Returns False if already present."""
        record = self._require_slot(day, time)
        if any(s.id == student.id for s in record.students):
            return False
        record.students.append(student)
        log.debug("local_student_added", date=day.isoformat(), time=time, student_id=student.id)
        return True

    def remove_student(self, day: date, time: str, student_id: str) -> bool:
        record = self._require_slot(day, time)
        before = len(record.students)
        record.students = [s for s in record.students if s.id != str(student_id)]
        return len(record.students) != before

    def __contains__(self, day: date) -> bool:
        return day in self._days
