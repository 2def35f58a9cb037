"""Teacher directory indexed by both external identifiers.

The remote feed refers to teachers by ``uid``; the local schedule historically
used ``id``. Both resolve to the same immutable Teacher record, ``uid`` first.
"""

from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from src.slotgrid.logging import get_logger
from src.slotgrid.models import Teacher

log = get_logger(__name__)


class TeacherDirectory:
    """Lookup table of teachers keyed by uid (primary) and id (secondary)."""

    def __init__(self, teachers: Iterable[Teacher] = ()) -> None:
        self._by_uid: dict[str, Teacher] = {}
        self._by_id: dict[str, Teacher] = {}
        self._ordered: list[Teacher] = []
        for teacher in teachers:
            self.add(teacher)

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> "TeacherDirectory":
        """Build a directory from raw feed records, skipping invalid ones."""
        directory = cls()
        skipped = duplicates = 0
        for record in records:
            try:
                teacher = Teacher.model_validate(record)
            except ValidationError:
                skipped += 1
                continue
            if not directory.add(teacher):
                duplicates += 1
        if skipped:
            log.warning("teacher_records_skipped", count=skipped)
        if duplicates:
            log.warning("teacher_duplicates_ignored", count=duplicates)
        return directory

    def add(self, teacher: Teacher) -> bool:
        """Index a teacher; the first record for a uid or id wins.

        Returns:
            False if the uid or id is already indexed (nothing is changed).
        """
        if (teacher.uid and teacher.uid in self._by_uid) or teacher.id in self._by_id:
            return False
        if teacher.uid:
            self._by_uid[teacher.uid] = teacher
        self._by_id[teacher.id] = teacher
        self._ordered.append(teacher)
        return True

    def lookup(self, identifier: str | int | None) -> Teacher | None:
        """Find a teacher by uid, falling back to a string-compared id."""
        if identifier is None or identifier == "":
            return None
        key = str(identifier)
        return self._by_uid.get(key) or self._by_id.get(key)

    def by_uid(self, uid: str) -> Teacher | None:
        return self._by_uid.get(uid)

    def by_id(self, teacher_id: str | int) -> Teacher | None:
        return self._by_id.get(str(teacher_id))

    def __iter__(self):
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)
