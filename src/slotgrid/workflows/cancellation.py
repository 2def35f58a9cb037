"""Cancellation and no-show workflow for bookings and availability slots.

States: IDLE -> REASON_PENDING -> CONFIRMING -> SUCCEEDED -> IDLE.
A failed confirmation stays in CONFIRMING with the error in ``status.error``.

Confirm is only possible once a CancelReason is chosen. Booking
cancellations recover the learner and teacher identifiers from the event
summary; availability cancellations send the raw slot instead.
"""

from datetime import date
from enum import Enum
from typing import Any

from src.slotgrid.client import SchedulingApiClient
from src.slotgrid.errors import InputValidationError, RemoteError, ValidationCode
from src.slotgrid.events import EventRecord, extract_identifiers
from src.slotgrid.logging import get_logger, log_error
from src.slotgrid.models import CancelReason, Notice
from src.slotgrid.timegrid import format_display_date
from src.slotgrid.workflows.base import RefreshCallback, Workflow

log = get_logger(__name__)


class CancellationKind(str, Enum):
    BOOKING = "booking"
    AVAILABILITY = "availability"


class CancellationState(str, Enum):
    IDLE = "idle"
    REASON_PENDING = "reason_pending"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"


class CancellationWorkflow(Workflow):
    """Drives one cancel popup from reason selection to confirmation."""

    def __init__(
        self,
        client: SchedulingApiClient,
        timezone: str,
        *,
        close_delay: float = 2.0,
        on_success: RefreshCallback | None = None,
    ) -> None:
        super().__init__(close_delay=close_delay, on_success=on_success)
        self.client = client
        self.timezone = timezone
        self._reset()

    def _reset(self) -> None:
        self.state = CancellationState.IDLE
        self.kind: CancellationKind | None = None
        self.slot_date: date | None = None
        self.slot_time: str | None = None
        self.event: EventRecord | None = None
        self.teacher_uid: str | None = None
        self.reason: CancelReason | None = None

    def open_booking(self, slot_date: date, slot_time: str, event: EventRecord | dict[str, Any]) -> None:
        """Open the popup for a booked event at a UTC-anchored slot."""
        self._cancel_pending_close()
        self._reset()
        self.kind = CancellationKind.BOOKING
        self.slot_date = slot_date
        self.slot_time = slot_time
        self.event = event if isinstance(event, EventRecord) else EventRecord.model_validate(event)
        self.notice = None
        self.status.error = None
        self.state = CancellationState.REASON_PENDING

    def open_availability(self, slot_date: date, slot_time: str, teacher_uid: str | None) -> None:
        """Open the popup for a teacher's availability slot.

        Raises:
            InputValidationError: NO_TEACHER_SELECTED if no teacher owns the slot.
        """
        if not teacher_uid:
            raise InputValidationError(
                ValidationCode.NO_TEACHER_SELECTED, "No teacher ID available for canceling availability"
            )
        self._cancel_pending_close()
        self._reset()
        self.kind = CancellationKind.AVAILABILITY
        self.slot_date = slot_date
        self.slot_time = slot_time
        self.teacher_uid = teacher_uid
        self.notice = None
        self.status.error = None
        self.state = CancellationState.REASON_PENDING

    def select_reason(self, reason: CancelReason | str | None) -> None:
        """Choose the reason code; an empty choice disables confirmation again."""
        if self.state == CancellationState.IDLE:
            raise RuntimeError("No cancellation in progress")
        if not reason:
            self.reason = None
            self.state = CancellationState.REASON_PENDING
            return
        try:
            self.reason = CancelReason(reason)
        except ValueError as exc:
            raise InputValidationError(
                ValidationCode.MISSING_REASON, f"Unknown cancellation reason: {reason!r}"
            ) from exc
        self.state = CancellationState.CONFIRMING

    @property
    def can_confirm(self) -> bool:
        return self.state == CancellationState.CONFIRMING and self.reason is not None

    def build_payload(self) -> dict[str, Any]:
        """Payload for the cancel-class or cancel-availability endpoint.

        Raises:
            InputValidationError: MISSING_REASON before a reason is chosen,
                UNPARSEABLE_SUMMARY if the booking summary lacks JL/TJL tokens.
        """
        if self.reason is None:
            raise InputValidationError(
                ValidationCode.MISSING_REASON, "Please select a cancellation reason."
            )
        if self.kind == CancellationKind.AVAILABILITY:
            return {
                "date": self.slot_date.isoformat(),
                "time": self.slot_time,
                "teacherId": self.teacher_uid,
                "timezone": self.timezone,
                "reason": self.reason.value,
            }

        summary = self.event.summary if self.event else ""
        learner_ids, teacher_id = extract_identifiers(summary)
        if not learner_ids or not teacher_id:
            raise InputValidationError(
                ValidationCode.UNPARSEABLE_SUMMARY,
                "Could not find learner and teacher identifiers in the booking summary.",
            )
        return {
            "cancellation_datetime": f"{format_display_date(self.slot_date)} {self.slot_time}",
            "jl_uid": learner_ids,
            "tlid": teacher_id,
            "summary": summary,
            "cancellation_type": self.reason.value,
        }

    def _success_notice(self) -> Notice:
        if self.kind == CancellationKind.AVAILABILITY:
            return Notice(message="Availability Successfully Cancelled !!", kind="cancel")
        if self.reason.is_no_show:
            return Notice(message="No Show Successfully Recorded !!", kind="no-show")
        return Notice(message="Booking Successfully Cancelled !!", kind="cancel")

    async def confirm(self) -> bool:
        """Send the cancellation.

        Returns:
            True on success. On failure the popup stays open with the chosen
            reason retained and the error in ``status.error``.

        Raises:
            InputValidationError: Nothing is sent.
        """
        payload = self.build_payload()
        self.status.start()
        try:
            if self.kind == CancellationKind.AVAILABILITY:
                await self.client.cancel_availability(payload)
            else:
                await self.client.cancel_class(payload)
        except RemoteError as exc:
            log_error(log, "cancellation_failed", exc, kind=self.kind.value, status=exc.status_code)
            self.status.fail(exc.message)
            return False

        log.info(
            "cancellation_recorded",
            kind=self.kind.value,
            reason=self.reason.value,
            date=self.slot_date.isoformat(),
            time=self.slot_time,
        )
        self.state = CancellationState.SUCCEEDED
        self.status.succeed(payload)
        await self._succeed(self._success_notice())
        return True

    def close(self) -> None:
        self._reset()
        self.notice = None
