"""Teacher leave application.

States: IDLE -> EDITING -> VALIDATING -> SUBMITTING -> SUCCEEDED.
A failed submission returns to EDITING with the error in ``status.error``.
"""

from collections.abc import Callable
from datetime import date, datetime, time
from enum import Enum
from typing import Any

from src.slotgrid.client import SchedulingApiClient
from src.slotgrid.errors import InputValidationError, RemoteError, ValidationCode
from src.slotgrid.logging import get_logger, log_error
from src.slotgrid.models import Notice, Teacher, check_time
from src.slotgrid.workflows.base import RefreshCallback, Workflow

log = get_logger(__name__)

DEFAULT_START_TIME = "00:00"
DEFAULT_END_TIME = "23:00"


class LeaveState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"


def _hour_time(value: str) -> str:
    try:
        check_time(value)
    except ValueError as exc:
        raise InputValidationError(ValidationCode.INVALID_TIME, str(exc)) from exc
    if not value.endswith(":00"):
        raise InputValidationError(
            ValidationCode.INVALID_TIME, f"Leave times are whole hours, got {value!r}"
        )
    return value


def _combined(day: date, hhmm: str) -> datetime:
    hour, minute = (int(part) for part in hhmm.split(":"))
    return datetime.combine(day, time(hour, minute))


class LeaveWorkflow(Workflow):
    """Leave form for one teacher."""

    def __init__(
        self,
        client: SchedulingApiClient,
        teacher: Teacher,
        *,
        today: Callable[[], date] = date.today,
        on_success: RefreshCallback | None = None,
    ) -> None:
        super().__init__(close_delay=0, on_success=on_success)
        self.client = client
        self.teacher = teacher
        self._today = today
        self.state = LeaveState.IDLE
        self._blank()

    def _blank(self) -> None:
        self.start_date: date | None = None
        self.start_time = DEFAULT_START_TIME
        self.end_date: date | None = None
        self.end_time = DEFAULT_END_TIME
        self.reason = ""

    def open(self) -> None:
        self._cancel_pending_close()
        self._blank()
        self.notice = None
        self.status.error = None
        self.state = LeaveState.EDITING

    def set_start_date(self, day: date | None) -> None:
        """Set the start date; clears an end date that would now precede it."""
        self.start_date = day
        if day and self.end_date and self._end_before_start():
            log.debug("leave_end_date_cleared", start_date=day.isoformat())
            self.end_date = None

    def set_start_time(self, value: str) -> None:
        self.start_time = _hour_time(value)

    def set_end_date(self, day: date | None) -> None:
        self.end_date = day

    def set_end_time(self, value: str) -> None:
        self.end_time = _hour_time(value)

    def set_reason(self, text: str) -> None:
        self.reason = text or ""

    def _end_before_start(self) -> bool:
        return _combined(self.end_date, self.end_time) < _combined(self.start_date, self.start_time)

    def validate(self) -> None:
        """Check the form, first failure wins.

        Raises:
            InputValidationError: START_DATE_REQUIRED, START_DATE_IN_PAST,
                END_DATE_REQUIRED, END_BEFORE_START or REASON_REQUIRED.
        """
        if not self.start_date:
            raise InputValidationError(ValidationCode.START_DATE_REQUIRED, "Start date is required")
        if self.start_date < self._today():
            raise InputValidationError(
                ValidationCode.START_DATE_IN_PAST, "Start date must be from today onwards"
            )
        if not self.end_date:
            raise InputValidationError(ValidationCode.END_DATE_REQUIRED, "End date is required")
        if self._end_before_start():
            raise InputValidationError(
                ValidationCode.END_BEFORE_START,
                "End date/time must be greater than or equal to start date/time",
            )
        if not self.reason.strip():
            raise InputValidationError(ValidationCode.REASON_REQUIRED, "Reason is required")

    def build_payload(self) -> dict[str, Any]:
        return {
            "teacher_email": self.teacher.email,
            "start_date": [self.start_date.isoformat(), self.start_time],
            "end_date": [self.end_date.isoformat(), self.end_time],
            "reason": self.reason,
            "teacher_id": self.teacher.uid,
        }

    async def submit(self) -> bool:
        """Validate and send the leave application.

        Returns:
            True on success (form reset to blank defaults), False on a remote
            failure (form kept, error in ``status.error``).

        Raises:
            InputValidationError: Nothing is sent.
        """
        self.state = LeaveState.VALIDATING
        try:
            self.validate()
        except InputValidationError as exc:
            self.state = LeaveState.EDITING
            self.status.error = exc.message
            raise

        payload = self.build_payload()
        self.state = LeaveState.SUBMITTING
        self.status.start()
        try:
            await self.client.apply_leave(payload)
        except RemoteError as exc:
            log_error(log, "leave_submit_failed", exc, teacher=self.teacher.uid, status=exc.status_code)
            self.status.fail(f"Failed to apply leave: {exc.message}")
            self.state = LeaveState.EDITING
            return False

        log.info(
            "leave_applied",
            teacher=self.teacher.uid,
            start=payload["start_date"],
            end=payload["end_date"],
        )
        self.status.succeed(payload)
        self._blank()
        self.state = LeaveState.SUCCEEDED
        await self._succeed(Notice(message="Leave added successfully!", kind="leave"), close_later=False)
        return True

    def close(self) -> None:
        self._blank()
        self.notice = None
        self.state = LeaveState.IDLE
