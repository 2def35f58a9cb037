"""SchedulingDashboard - orchestrates the resolved week grid and its workflows.

Owns the local fallback schedule, the teacher directory, the weekly summary
cache and one fenced slice per remote resource:

  week_data             summary counts for the displayed week
  availability_details  events behind an "Available" cell
  booking_details       events behind a "Booked" cell
  list_view             bookings from week start through end of month

Each slice tracks its own loading/error status; a week navigation while
another request is in flight simply issues a second, independent fetch.
"""

import asyncio
import datetime as dt
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError

from src.slotgrid.client import AVAILABILITY_TYPE, BOOKINGS_TYPE, FeedQuery, SchedulingApiClient
from src.slotgrid.config import EngineConfig
from src.slotgrid.directory import TeacherDirectory
from src.slotgrid.errors import InputValidationError, RemoteError, ValidationCode
from src.slotgrid.events import (
    AvailabilityDetails,
    BookingDetails,
    EventRecord,
    flatten_event_grid,
    parse_availability_event,
    parse_booking_event,
)
from src.slotgrid.feed import FencedSlice
from src.slotgrid.logging import get_logger, log_error
from src.slotgrid.models import (
    CellClass,
    OperationStatus,
    RemoteDaySummary,
    SlotCounts,
    Student,
    StudentBookingRef,
    Teacher,
)
from src.slotgrid.paginator import Pagination
from src.slotgrid.resolver import (
    align_to_catalog,
    classify_cell,
    is_week_off,
    resolve,
    resolve_for_candidate_teacher,
)
from src.slotgrid.store import ScheduleStore
from src.slotgrid.timegrid import catalog_times, current_week_start, list_view_range, week_dates_of
from src.slotgrid.timezones import (
    is_valid_timezone,
    parse_timezone,
    pick_default_timezone,
    to_display_key,
)
from src.slotgrid.workflows.booking import BookingKind, BookingWorkflow
from src.slotgrid.workflows.cancellation import CancellationWorkflow
from src.slotgrid.workflows.leave import LeaveWorkflow

log = get_logger(__name__)


class ViewMode(str, Enum):
    WEEK = "week"
    LIST = "list"


class GridCell(BaseModel):
    date: dt.date  # UTC-anchored slot key
    time: str
    display_date: dt.date  # same instant in the display timezone
    display_time: str
    counts: SlotCounts
    cell_class: CellClass
    week_off: bool = False


class GridRow(BaseModel):
    time: str
    cells: list[GridCell]


class DetailsPopup(BaseModel):
    kind: str  # "booking" or "availability"
    date: dt.date
    time: str
    teacher_uid: str | None = None
    events: list[BookingDetails | AvailabilityDetails] = []


class SchedulingDashboard:
    """State and operations behind the scheduling dashboard."""

    def __init__(
        self,
        client: SchedulingApiClient,
        config: EngineConfig | None = None,
        *,
        directory: TeacherDirectory | None = None,
        store: ScheduleStore | None = None,
        today: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self.client = client
        self.config = config or client.config
        self.directory = directory or TeacherDirectory()
        self.store = store or ScheduleStore(self.config.slot_granularity_minutes)
        self.times = catalog_times(self.config.slot_granularity_minutes)
        self._today = today

        self.timezone = self.config.default_timezone
        self.timezones: list[str] = []
        self.students: list[Student] = []
        self.week_start = current_week_start(today())
        self.selected_teacher: Teacher | None = None
        self.selected_student: Student | None = None
        self.view = ViewMode.WEEK

        self.week_data: FencedSlice[RemoteDaySummary] = FencedSlice("week_data", {})
        self.availability_details: FencedSlice[Any] = FencedSlice("availability_details", None)
        self.booking_details: FencedSlice[Any] = FencedSlice("booking_details", None)
        self.list_view: FencedSlice[list[EventRecord]] = FencedSlice("list_view", [])
        self.timezones_status = OperationStatus()
        self.teachers_status = OperationStatus()
        self.students_status = OperationStatus()

        self.list_pagination = Pagination(self.config.list_page_size)
        self.popup_pagination = Pagination(self.config.popup_page_size)
        self.calendar_pagination = Pagination(self.config.calendar_page_size)
        self.popup: DetailsPopup | None = None
        self._bind_paginations()

    # --- context ---------------------------------------------------------

    @property
    def week_dates(self) -> list[dt.date]:
        return week_dates_of(self.week_start)

    def _context(self) -> tuple:
        return (
            self.week_start,
            self.selected_teacher.uid if self.selected_teacher else None,
            self.selected_student.jetlearner_id if self.selected_student else None,
            self.timezone,
            self.view,
        )

    def _bind_paginations(self) -> None:
        context = self._context()
        self.list_pagination.bind(context)
        self.popup_pagination.bind(context)
        self.calendar_pagination.bind(context)

    # --- startup ---------------------------------------------------------

    async def start(self) -> None:
        """Load timezones, teachers and learners, then the current week."""
        await asyncio.gather(self.load_timezones(), self.load_teachers(), self.load_students())
        await self.load_week()

    async def load_timezones(self) -> None:
        """Fetch the display timezone list and select the default entry.

        Entries without a parseable GMT offset are dropped.
        """
        self.timezones_status.start()
        try:
            raw = await self.client.fetch_timezones()
        except RemoteError as exc:
            log_error(log, "timezones_fetch_failed", exc)
            self.timezones_status.fail(exc.message)
            return
        valid = [tz for tz in raw if is_valid_timezone(tz)]
        if len(valid) != len(raw):
            log.warning("timezones_dropped", count=len(raw) - len(valid))
        self.timezones = valid
        default = pick_default_timezone(valid, self.config.preferred_timezone_marker)
        if default:
            self.timezone = default
        self.timezones_status.succeed(valid)
        self._bind_paginations()

    async def load_teachers(self) -> None:
        self.teachers_status.start()
        try:
            records = await self.client.fetch_teachers()
        except RemoteError as exc:
            log_error(log, "teachers_fetch_failed", exc)
            self.teachers_status.fail(exc.message)
            return
        self.directory = TeacherDirectory.from_records(records)
        self.teachers_status.succeed(len(self.directory))
        log.info("teachers_loaded", count=len(self.directory))

    async def load_students(self) -> None:
        """Fetch the learner list; records without a learner id are dropped."""
        self.students_status.start()
        try:
            records = await self.client.fetch_students()
        except RemoteError as exc:
            log_error(log, "students_fetch_failed", exc)
            self.students = []
            self.students_status.fail(exc.message)
            return
        students = []
        for record in records:
            try:
                students.append(Student.model_validate(record))
            except ValidationError:
                log.debug("student_record_skipped", keys=sorted(record))
        self.students = students
        self.students_status.succeed(len(students))
        log.info("students_loaded", count=len(students))

    def find_student(self, jetlearner_id: str) -> Student | None:
        return next((s for s in self.students if s.jetlearner_id == str(jetlearner_id)), None)

    # --- remote slices ---------------------------------------------------

    def _query(self, start: dt.date, end: dt.date, **extra: Any) -> FeedQuery:
        teacher = self.selected_teacher
        return FeedQuery(
            start_date=start,
            end_date=end,
            timezone=self.timezone,
            teacher_uid=teacher.uid if teacher else None,
            teacher_email=teacher.email if teacher else None,
            jlid=self.selected_student.jetlearner_id if self.selected_student else None,
            **extra,
        )

    async def load_week(self) -> bool:
        """Fetch the summary for the displayed week and replace the cache.

        Returns:
            True if the response was committed (not failed, not superseded).
        """
        ticket = self.week_data.begin()
        dates = self.week_dates
        try:
            summary = await self.client.fetch_summary(self._query(dates[0], dates[-1]))
        except RemoteError as exc:
            log_error(log, "week_fetch_failed", exc, week_start=dates[0].isoformat())
            self.week_data.fail(ticket, exc.message)
            return False
        return self.week_data.commit(
            ticket, align_to_catalog(summary, self.config.slot_granularity_minutes)
        )

    async def load_list_view(self) -> bool:
        """Fetch bookings from the displayed week start through end of month."""
        ticket = self.list_view.begin()
        start, end = list_view_range(self.week_start, self._today())
        try:
            raw = await self.client.fetch_booking_details(self._query(start, end))
        except RemoteError as exc:
            log_error(log, "list_view_fetch_failed", exc)
            self.list_view.fail(ticket, exc.message)
            return False
        committed = self.list_view.commit(ticket, flatten_event_grid(raw))
        if committed:
            self.list_pagination.reset()
        return committed

    async def _refresh(self) -> None:
        await self.load_week()
        if self.view == ViewMode.LIST and (self.selected_teacher or self.selected_student):
            await self.load_list_view()

    # --- navigation and filters -------------------------------------------

    async def go_to_date(self, day: dt.date) -> None:
        self.week_start = week_dates_of(day)[0]
        self._bind_paginations()
        await self._refresh()

    async def next_week(self) -> None:
        await self.go_to_date(self.week_start + dt.timedelta(days=7))

    async def previous_week(self) -> None:
        await self.go_to_date(self.week_start - dt.timedelta(days=7))

    async def select_teacher(self, teacher: Teacher | None) -> None:
        self.selected_teacher = teacher
        self._bind_paginations()
        await self._refresh()

    async def select_student(self, student: Student | None) -> None:
        self.selected_student = student
        self._bind_paginations()
        await self._refresh()

    async def select_timezone(self, timezone: str) -> None:
        """Switch the display timezone.

        Raises:
            MalformedTimezoneError: The current timezone is kept.
        """
        parse_timezone(timezone)
        self.timezone = timezone
        self._bind_paginations()
        await self._refresh()

    async def set_view(self, view: ViewMode | str) -> None:
        self.view = ViewMode(view)
        self._bind_paginations()
        if self.view == ViewMode.LIST and (self.selected_teacher or self.selected_student):
            await self.load_list_view()

    # --- grid ------------------------------------------------------------

    def slot_counts(self, day: dt.date, time: str) -> SlotCounts:
        return resolve(day, time, self.week_data.data, self.store, self.directory)

    def candidate_slot_counts(
        self, day: dt.date, time: str, candidate_uid: str, summary: RemoteDaySummary
    ) -> SlotCounts | None:
        """Counts from another teacher's summary, only for that teacher's slots."""
        return resolve_for_candidate_teacher(day, time, candidate_uid, summary, self.directory)

    def cell(self, day: dt.date, time: str) -> GridCell:
        counts = self.slot_counts(day, time)
        display_date, display_time = to_display_key(day, time, self.timezone)
        return GridCell(
            date=day,
            time=time,
            display_date=display_date,
            display_time=display_time,
            counts=counts,
            cell_class=classify_cell(counts.available, counts.booked),
            week_off=is_week_off(day, self.week_data.data),
        )

    def grid(self, *, paginated: bool = False) -> list[GridRow]:
        """Resolved week grid, one row per catalog time.

        Args:
            paginated: Return only the calendar page currently selected.
        """
        times = self.calendar_pagination.slice(self.times) if paginated else self.times
        dates = self.week_dates
        return [GridRow(time=time, cells=[self.cell(day, time) for day in dates]) for time in times]

    def is_week_off(self, day: dt.date) -> bool:
        return is_week_off(day, self.week_data.data)

    # --- detail popups ---------------------------------------------------

    def _popup_teacher(self, day: dt.date, time: str) -> Teacher | None:
        owner = self.slot_counts(day, time).owner_teacher_id
        if owner:
            return self.directory.lookup(owner) or Teacher(id=owner, uid=owner)
        return self.selected_teacher

    async def _open_details(
        self, kind: str, event_type: str, target: FencedSlice, day: dt.date, time: str
    ) -> DetailsPopup:
        teacher = self._popup_teacher(day, time)
        popup = DetailsPopup(
            kind=kind, date=day, time=time, teacher_uid=teacher.uid if teacher else None
        )
        self.popup = popup
        self.popup_pagination.reset()

        ticket = target.begin()
        query = FeedQuery(
            start_date=day,
            end_date=day,
            timezone=self.timezone,
            teacher_uid=teacher.uid if teacher else None,
            teacher_email=teacher.email if teacher else None,
            event_type=event_type,
        )
        try:
            raw = await self.client.fetch_booking_details(query)
        except RemoteError as exc:
            log_error(log, "details_fetch_failed", exc, kind=kind)
            target.fail(ticket, exc.message)
            return popup
        if target.commit(ticket, raw):
            parse = parse_booking_event if kind == "booking" else parse_availability_event
            popup.events = [parse(record) for record in _slot_events(raw, day, time)]
        return popup

    async def open_booking_details(self, day: dt.date, time: str) -> DetailsPopup:
        """Open the "Booked" popup and fetch its events, filtered to the slot's teacher."""
        return await self._open_details("booking", BOOKINGS_TYPE, self.booking_details, day, time)

    async def open_availability_details(self, day: dt.date, time: str) -> DetailsPopup:
        return await self._open_details(
            "availability", AVAILABILITY_TYPE, self.availability_details, day, time
        )

    def popup_page(self) -> list[BookingDetails | AvailabilityDetails]:
        return self.popup_pagination.slice(self.popup.events) if self.popup else []

    def close_popup(self) -> None:
        self.popup = None
        self.popup_pagination.reset()

    def list_page(self) -> list[EventRecord]:
        return self.list_pagination.slice(self.list_view.data)

    # --- local fallback schedule -----------------------------------------

    def add_local_teacher(self, day: dt.date, time: str, teacher_id: str) -> bool:
        teacher = self.directory.lookup(teacher_id)
        if teacher is None:
            raise InputValidationError(
                ValidationCode.NO_TEACHER_SELECTED, f"Unknown teacher {teacher_id!r}"
            )
        return self.store.add_teacher(day, time, teacher)

    def remove_local_teacher(self, day: dt.date, time: str, teacher_id: str) -> bool:
        return self.store.remove_teacher(day, time, teacher_id)

    def add_local_student(self, day: dt.date, time: str, student: StudentBookingRef) -> bool:
        return self.store.add_student(day, time, student)

    def remove_local_student(self, day: dt.date, time: str, student_id: str) -> bool:
        return self.store.remove_student(day, time, student_id)

    # --- workflows -------------------------------------------------------

    def new_booking(
        self, teacher: Teacher | None = None, kind: BookingKind = BookingKind.TRIAL
    ) -> BookingWorkflow:
        workflow = BookingWorkflow(
            self.client,
            self.timezone,
            today=self._today,
            close_delay=self.config.success_close_delay_seconds,
            on_success=self.load_week,
        )
        workflow.start(teacher or self.selected_teacher, kind)
        return workflow

    def new_cancellation(self) -> CancellationWorkflow:
        return CancellationWorkflow(
            self.client,
            self.timezone,
            close_delay=self.config.success_close_delay_seconds,
            on_success=self.load_list_view,
        )

    def new_leave(self, teacher: Teacher | None = None) -> LeaveWorkflow:
        teacher = teacher or self.selected_teacher
        if teacher is None:
            raise InputValidationError(ValidationCode.NO_TEACHER_SELECTED, "Select a teacher first")
        workflow = LeaveWorkflow(self.client, teacher, today=self._today, on_success=self.load_week)
        workflow.open()
        return workflow


def _slot_events(raw: Any, day: dt.date, time: str) -> list[EventRecord]:
    """Events of one cell; records without a date/time key (bare lists) all belong."""
    key = day.isoformat()
    return [
        record
        for record in flatten_event_grid(raw)
        if record.date in (None, key) and record.time in (None, time)
    ]
