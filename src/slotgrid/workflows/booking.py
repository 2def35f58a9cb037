"""Booking workflow for trial and paid classes.

States: IDLE -> COLLECTING -> VALIDATING -> SUBMITTING -> SUCCEEDED -> IDLE.
A failed submission returns to COLLECTING with the error in ``status.error``.

Schedule entries are collected in the display timezone and converted to
UTC-anchored keys only when the payload is built. One book-class request is
sent per selected learner, each with the same teacher and schedule.
"""

import re
from collections.abc import Callable
from datetime import date
from enum import Enum

from pydantic import BaseModel, Field

from src.slotgrid.client import SchedulingApiClient
from src.slotgrid.errors import InputValidationError, RemoteError, ValidationCode
from src.slotgrid.logging import get_logger, log_error
from src.slotgrid.models import (
    Notice,
    ScheduleEntry,
    Student,
    StudentBookingRef,
    Teacher,
    check_time,
)
from src.slotgrid.timezones import parse_timezone, to_utc
from src.slotgrid.workflows.base import RefreshCallback, Workflow

log = get_logger(__name__)

MAX_SCHEDULE_ENTRIES = 3
MAX_STUDENTS = 10
SUBJECTS = ("maths", "coding")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Domain fragments of frequent typos -> intended domain
_DOMAIN_CORRECTIONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("gmal", "gmai"), "gmail.com"),
    (("yah",), "yahoo.com"),
    (("hotmai", "hotmal"), "hotmail.com"),
    (("outloo",), "outlook.com"),
)


class BookingKind(str, Enum):
    TRIAL = "trial"
    PAID = "paid"


class ClassType(str, Enum):
    ONE_TO_ONE = "1:1"
    ONE_TO_TWO = "1:2"
    BATCH = "batch"


CLASS_TYPE_CAPACITY: dict[ClassType, int] = {
    ClassType.ONE_TO_ONE: 1,
    ClassType.ONE_TO_TWO: 2,
    ClassType.BATCH: MAX_STUDENTS,
}


class BookingState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"


class BookingDraft(BaseModel):
    """Everything the user has entered so far."""

    teacher: Teacher | None = None
    kind: BookingKind = BookingKind.TRIAL
    entries: list[ScheduleEntry] = Field(default_factory=list)
    students: list[StudentBookingRef] = Field(default_factory=list)
    attendees: list[str] = Field(default_factory=list)  # lower-cased, unique
    platform_credentials: str = ""
    subject: str | None = None
    class_type: ClassType | None = None
    class_count: int | None = None
    batch_name: str = ""
    tags: list[str] = Field(default_factory=list)

    @property
    def effective_class_type(self) -> ClassType | None:
        return ClassType.ONE_TO_ONE if self.kind == BookingKind.TRIAL else self.class_type

    @property
    def student_capacity(self) -> int:
        class_type = self.effective_class_type
        return CLASS_TYPE_CAPACITY[class_type] if class_type else MAX_STUDENTS


class BookingResult(BaseModel):
    booked: list[str] = Field(default_factory=list)  # learner ids accepted by the feed
    failed: dict[str, str] = Field(default_factory=dict)  # learner id -> error message

    @property
    def ok(self) -> bool:
        return not self.failed


def suggest_email_correction(email: str) -> str | None:
    """Suggest a corrected address for common domain typos, or None."""
    local, _, domain = email.partition("@")
    domain = domain.lower()
    for fragments, canonical in _DOMAIN_CORRECTIONS:
        if domain != canonical and any(fragment in domain for fragment in fragments):
            return f"{local}@{canonical}"
    return None


def parse_attendees(text: str) -> list[str]:
    """Split, validate, lower-case and de-duplicate an attendee list.

    Args:
        text: Comma- or newline-separated addresses.

    Returns:
        Unique lower-cased addresses in first-seen order.

    Raises:
        InputValidationError: INVALID_EMAIL for the first malformed address.
    """
    attendees: list[str] = []
    for raw in re.split(r"[,\n]", text or ""):
        email = raw.strip()
        if not email:
            continue
        if not EMAIL_PATTERN.match(email):
            raise InputValidationError(
                ValidationCode.INVALID_EMAIL, f"Invalid email format: {email}"
            )
        lowered = email.lower()
        if lowered not in attendees:
            attendees.append(lowered)
    return attendees


class BookingWorkflow(Workflow):
    """Collects, validates and submits one booking attempt."""

    def __init__(
        self,
        client: SchedulingApiClient,
        timezone: str,
        *,
        today: Callable[[], date] = date.today,
        close_delay: float = 2.0,
        on_success: RefreshCallback | None = None,
    ) -> None:
        super().__init__(close_delay=close_delay, on_success=on_success)
        self.client = client
        self.timezone = timezone
        self._today = today
        self.state = BookingState.IDLE
        self.draft = BookingDraft()

    # --- collecting ------------------------------------------------------

    def start(self, teacher: Teacher | None = None, kind: BookingKind = BookingKind.TRIAL) -> None:
        """Open the input surface with an empty draft."""
        self._cancel_pending_close()
        self.draft = BookingDraft(teacher=teacher, kind=kind)
        self.notice = None
        self.status.error = None
        self.state = BookingState.COLLECTING

    def add_entry(self, day: date, time: str) -> ScheduleEntry:
        """Add a display-timezone schedule entry.

        Raises:
            InputValidationError: SCHEDULE_ENTRY_LIMIT when 3 entries exist,
                PAST_DATE_REJECTED for a date before today, INVALID_TIME for a
                malformed time.
        """
        if len(self.draft.entries) >= MAX_SCHEDULE_ENTRIES:
            raise InputValidationError(
                ValidationCode.SCHEDULE_ENTRY_LIMIT,
                f"Maximum {MAX_SCHEDULE_ENTRIES} schedule entries can be added.",
            )
        if day < self._today():
            raise InputValidationError(
                ValidationCode.PAST_DATE_REJECTED,
                "Cannot schedule for past dates. Please select a future date.",
            )
        try:
            check_time(time)
        except ValueError as exc:
            raise InputValidationError(ValidationCode.INVALID_TIME, str(exc)) from exc
        entry = ScheduleEntry(date=day, time=time)
        self.draft.entries.append(entry)
        return entry

    def remove_entry(self, index: int) -> None:
        del self.draft.entries[index]

    def add_student(self, student: Student | StudentBookingRef) -> bool:
        """Select a learner. Returns False if already selected.

        Raises:
            InputValidationError: CLASS_TYPE_CAPACITY_EXCEEDED when the class
                type is full, STUDENT_LIMIT past 10 learners.
        """
        if isinstance(student, Student):
            student = StudentBookingRef(
                id=student.jetlearner_id, name=student.display_name, email=student.email
            )
        if any(s.id == student.id for s in self.draft.students):
            return False
        if len(self.draft.students) >= self.draft.student_capacity:
            if self.draft.student_capacity < MAX_STUDENTS:
                raise InputValidationError(
                    ValidationCode.CLASS_TYPE_CAPACITY_EXCEEDED,
                    f"Maximum {self.draft.student_capacity} learners can be selected "
                    f"for {self.draft.effective_class_type.value} class type.",
                )
            raise InputValidationError(
                ValidationCode.STUDENT_LIMIT,
                f"Maximum {MAX_STUDENTS} learners can be selected.",
            )
        self.draft.students.append(student)
        return True

    def remove_student(self, student_id: str) -> None:
        self.draft.students = [s for s in self.draft.students if s.id != student_id]

    def set_kind(self, kind: BookingKind) -> None:
        if kind == BookingKind.TRIAL:
            self._check_capacity(CLASS_TYPE_CAPACITY[ClassType.ONE_TO_ONE], ClassType.ONE_TO_ONE)
        self.draft.kind = kind

    def set_class_type(self, class_type: ClassType | str) -> None:
        """Change the paid class type; refused if it cannot hold the selection."""
        class_type = ClassType(class_type)
        self._check_capacity(CLASS_TYPE_CAPACITY[class_type], class_type)
        self.draft.class_type = class_type

    def _check_capacity(self, capacity: int, class_type: ClassType) -> None:
        if len(self.draft.students) > capacity:
            raise InputValidationError(
                ValidationCode.CLASS_TYPE_CAPACITY_EXCEEDED,
                f"Cannot switch to {class_type.value} class type. Please remove some "
                f"learners first (maximum {capacity} allowed).",
            )

    def set_class_count(self, count: int | str) -> None:
        try:
            value = int(count)
        except (TypeError, ValueError):
            value = 0
        if value <= 0:
            raise InputValidationError(
                ValidationCode.INVALID_CLASS_COUNT, "Class count must be a positive integer."
            )
        self.draft.class_count = value

    def set_subject(self, subject: str) -> None:
        self.draft.subject = subject or None

    def set_batch_name(self, name: str) -> None:
        self.draft.batch_name = (name or "").strip()

    def set_tags(self, tags: str | list[str]) -> None:
        if isinstance(tags, str):
            tags = tags.split(",")
        self.draft.tags = [t.strip() for t in tags if t.strip()]

    def set_platform_credentials(self, value: str) -> None:
        self.draft.platform_credentials = value or ""

    def set_attendees(self, text: str) -> dict[str, str]:
        """Replace the attendee list.

        Returns:
            Correction hints (entered address -> suggested address); the
            addresses are stored as entered.

        Raises:
            InputValidationError: INVALID_EMAIL; the previous list is kept.
        """
        attendees = parse_attendees(text)
        self.draft.attendees = attendees
        hints = {}
        for email in attendees:
            suggestion = suggest_email_correction(email)
            if suggestion:
                hints[email] = suggestion
        return hints

    # --- validating ------------------------------------------------------

    def validate(self) -> None:
        """Check the draft, first failure wins.

        Raises:
            InputValidationError: see ValidationCode for the possible codes.
        """
        draft = self.draft
        if not draft.students:
            raise InputValidationError(
                ValidationCode.NO_STUDENT_SELECTED, "Please select at least one student."
            )
        if not draft.entries:
            raise InputValidationError(
                ValidationCode.NO_SCHEDULE_ENTRY, "Please add at least one schedule entry."
            )
        today = self._today()
        if any(entry.date < today for entry in draft.entries):
            raise InputValidationError(
                ValidationCode.PAST_DATE_REJECTED,
                "Cannot schedule for past dates. Please remove entries before today.",
            )
        if len(draft.students) > draft.student_capacity:
            raise InputValidationError(
                ValidationCode.CLASS_TYPE_CAPACITY_EXCEEDED,
                f"Maximum {draft.student_capacity} learners can be selected "
                f"for {draft.effective_class_type.value} class type.",
            )
        if draft.kind == BookingKind.PAID:
            if not draft.subject or not draft.class_type or not draft.class_count:
                raise InputValidationError(
                    ValidationCode.MISSING_PAID_FIELDS,
                    "Please fill in all required fields for paid booking.",
                )
            if draft.class_type == ClassType.BATCH and not draft.batch_name:
                raise InputValidationError(
                    ValidationCode.MISSING_BATCH_NAME,
                    "Please enter a batch number for batch class type.",
                )
        if draft.teacher is None or not draft.teacher.uid:
            raise InputValidationError(ValidationCode.NO_TEACHER_SELECTED, "Teacher not found")
        parse_timezone(self.timezone)

    def utc_schedule(self) -> list[list[str]]:
        """Schedule entries converted from the display timezone to UTC pairs."""
        pairs = []
        for entry in self.draft.entries:
            utc_date, utc_time = to_utc(entry.date, entry.time, self.timezone)
            pairs.append([utc_date.isoformat(), utc_time])
        return pairs

    def build_payloads(self) -> list[dict]:
        """One book-class payload per selected learner."""
        draft = self.draft
        schedule = self.utc_schedule()
        trial = draft.kind == BookingKind.TRIAL
        payloads = []
        for student in draft.students:
            payload = {
                "jl_uid": [student.id],
                "teacher_uid": draft.teacher.uid,
                "platform_credentials": draft.platform_credentials,
                "class_count": 1 if trial else draft.class_count,
                "schedule": schedule,
                "attendees": list(draft.attendees),
                "class_type": ClassType.ONE_TO_ONE.value if trial else draft.class_type.value,
                "booking_type": "Trial" if trial else "Paid",
            }
            if not trial:
                payload["course"] = draft.subject
                payload["recording"] = list(draft.tags)
                payload["tags"] = list(draft.tags)
                if draft.class_type == ClassType.BATCH:
                    payload["batch_name"] = draft.batch_name
            payloads.append(payload)
        return payloads

    # --- submitting ------------------------------------------------------

    async def submit(self) -> BookingResult:
        """Validate and send the booking.

        Returns:
            BookingResult listing accepted and failed learners.

        Raises:
            InputValidationError: Nothing is sent; the draft stays intact.
        """
        self.state = BookingState.VALIDATING
        try:
            self.validate()
            payloads = self.build_payloads()
        except InputValidationError as exc:
            self.state = BookingState.COLLECTING
            self.status.error = exc.message
            log.info("booking_validation_failed", code=exc.code.value)
            raise

        self.state = BookingState.SUBMITTING
        self.status.start()
        result = BookingResult()
        for payload in payloads:
            learner = payload["jl_uid"][0]
            try:
                await self.client.book_class(payload)
            except RemoteError as exc:
                log_error(log, "booking_submit_failed", exc, learner=learner, status=exc.status_code)
                result.failed[learner] = exc.message
            else:
                result.booked.append(learner)
                log.info("booking_submitted", learner=learner, teacher=payload["teacher_uid"])

        if not result.ok:
            self.status.fail("Failed to send booking. Please try again. " + "; ".join(
                f"{learner}: {message}" for learner, message in result.failed.items()
            ))
            # Accepted learners leave the draft so a resubmit only retries the rest
            booked = set(result.booked)
            self.draft.students = [s for s in self.draft.students if s.id not in booked]
            self.state = BookingState.COLLECTING
            if booked:
                await self._refresh()
            return result

        self.state = BookingState.SUCCEEDED
        self.status.succeed(result)
        await self._succeed(Notice(message="Booking Successfully Done !!", kind="booking"))
        return result

    def close(self) -> None:
        """Close the input surface and clear everything collected."""
        self.draft = BookingDraft()
        self.notice = None
        self.state = BookingState.IDLE
