"""HTTP client for the remote availability/booking feed.

Reads (summary, booking details, timezones, teachers) are idempotent and are
retried on TransientError. Submissions (book, cancel, leave) are sent once;
a retry is always an explicit user resubmission.
"""

from datetime import date
from typing import Any

import httpx
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from src.slotgrid.config import EngineConfig
from src.slotgrid.errors import (
    AuthenticationError,
    DomainRejectionError,
    PermanentError,
    RateLimitError,
    TransientError,
)
from src.slotgrid.logging import get_logger
from src.slotgrid.models import RemoteDaySummary, parse_remote_summary

log = get_logger(__name__)

AVAILABILITY_TYPE = "Availability"
BOOKINGS_TYPE = "Bookings"


class FeedQuery(BaseModel):
    """Filter shape shared by the summary and booking-detail fetches."""

    start_date: date
    end_date: date
    timezone: str
    teacher_uid: str | None = None
    teacher_email: str | None = None
    jlid: str | None = None
    event_type: str | None = None  # "Availability" / "Bookings" for detail popups

    @property
    def has_filters(self) -> bool:
        return bool(self.teacher_uid or self.jlid)

    def _base_form(self) -> dict[str, str]:
        form = {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "timezone": self.timezone,
        }
        if self.teacher_uid:
            form["teacherid"] = self.teacher_uid
            if self.teacher_email:
                form["email"] = self.teacher_email
        if self.jlid:
            form["jlid"] = self.jlid
        return form

    def summary_form(self) -> dict[str, str]:
        """Form body for the summary feed.

        A teacher or learner filter suppresses the ``type`` discriminator;
        without filters ``type=Availability`` selects the unfiltered dataset.
        """
        form = self._base_form()
        if not self.has_filters:
            form["type"] = AVAILABILITY_TYPE
        return form

    def details_form(self) -> dict[str, str]:
        form = self._base_form()
        if self.event_type:
            form["type"] = self.event_type
        return form


class SchedulingApiClient:
    """Async client for the scheduling feed endpoints."""

    def __init__(self, config: EngineConfig, http: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self.http = http or httpx.AsyncClient(
            base_url=config.scheduling_api_url,
            timeout=httpx.Timeout(config.request_timeout_seconds),
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and decode the JSON body.

        Raises:
            TransientError: Network failure, timeout or 5xx.
            RateLimitError: 429.
            AuthenticationError: 401/403.
            PermanentError: Any other 4xx, or an undecodable body.
        """
        try:
            response = await self.http.request(method, path, data=data, json=json)
        except httpx.TimeoutException as exc:
            log.warning("remote_timeout", path=path)
            raise TransientError(f"Request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            log.warning("remote_connection_failed", path=path, error=str(exc))
            raise TransientError(f"Request to {path} failed: {exc}") from exc

        status = response.status_code
        if status >= 400:
            message = f"HTTP error! status: {status}"
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                message += f" - {body['message']}"
            log.warning("remote_http_error", path=path, status=status)
            if status == 429:
                raise RateLimitError(message, status_code=status)
            if status in (401, 403):
                raise AuthenticationError(message, status_code=status)
            if status >= 500:
                raise TransientError(message, status_code=status)
            raise PermanentError(message, status_code=status)

        try:
            return response.json()
        except ValueError as exc:
            raise PermanentError(f"Undecodable response from {path}", status_code=status) from exc

    async def _read(self, method: str, path: str, *, data: dict[str, str] | None = None) -> Any:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.config.fetch_retry_attempts),
            wait=wait_fixed(self.config.fetch_retry_wait_seconds),
            retry=retry_if_exception_type(TransientError),
            reraise=True,
        ):
            with attempt:
                return await self._request(method, path, data=data)

    async def _submit(self, path: str, payload: dict[str, Any], *, require_success: bool) -> Any:
        body = await self._request("POST", path, json=payload)
        if require_success and not (isinstance(body, dict) and body.get("status") == "success"):
            message = body.get("message") if isinstance(body, dict) else None
            log.warning("remote_rejected", path=path, body=body)
            raise DomainRejectionError(message or "Request was not accepted", body=body)
        return body

    # --- reads -----------------------------------------------------------

    async def fetch_summary(self, query: FeedQuery) -> RemoteDaySummary:
        """Fetch per-slot availability/booking counts for a date range.

        When the query is teacher-filtered, every returned slot is stamped
        with that teacher's uid so the resolver can attribute it.
        """
        raw = await self._read("POST", self.config.summary_endpoint, data=query.summary_form())
        summary = parse_remote_summary(raw)
        if query.teacher_uid:
            summary = {
                day: {
                    time: slot.model_copy(update={"teacherid": query.teacher_uid})
                    for time, slot in times.items()
                }
                for day, times in summary.items()
            }
        log.info(
            "summary_fetched",
            start_date=query.start_date.isoformat(),
            end_date=query.end_date.isoformat(),
            filtered=query.has_filters,
            days=len(summary),
        )
        return summary

    async def fetch_booking_details(self, query: FeedQuery) -> Any:
        """Fetch raw event records keyed by date -> time -> {"events": [...]}."""
        raw = await self._read("POST", self.config.details_endpoint, data=query.details_form())
        log.info(
            "booking_details_fetched",
            start_date=query.start_date.isoformat(),
            end_date=query.end_date.isoformat(),
            event_type=query.event_type,
        )
        return raw

    async def fetch_timezones(self) -> list[str]:
        raw = await self._read("GET", self.config.timezones_endpoint)
        if not isinstance(raw, list):
            raise PermanentError("Timezone list is not a list")
        return [str(tz) for tz in raw]

    async def fetch_teachers(self) -> list[dict[str, Any]]:
        raw = await self._read("GET", self.config.teachers_endpoint)
        if isinstance(raw, dict):
            raw = raw.get("teachers") or raw.get("data") or []
        if not isinstance(raw, list):
            raise PermanentError("Teacher list is not a list")
        return [t for t in raw if isinstance(t, dict)]

    async def fetch_students(self) -> list[dict[str, Any]]:
        """Fetch the learner list used for student selection.

        A body that is not a list yields no learners.
        """
        raw = await self._read("GET", self.config.students_endpoint)
        if not isinstance(raw, list):
            log.warning("students_response_not_list", type=type(raw).__name__)
            return []
        return [s for s in raw if isinstance(s, dict)]

    # --- submissions -----------------------------------------------------

    async def book_class(self, payload: dict[str, Any]) -> Any:
        return await self._submit(self.config.book_class_endpoint, payload, require_success=True)

    async def cancel_class(self, payload: dict[str, Any]) -> Any:
        return await self._submit(self.config.cancel_class_endpoint, payload, require_success=True)

    async def cancel_availability(self, payload: dict[str, Any]) -> Any:
        return await self._submit(
            self.config.cancel_availability_endpoint, payload, require_success=False
        )

    async def apply_leave(self, payload: dict[str, Any]) -> Any:
        return await self._submit(self.config.leave_endpoint, payload, require_success=False)
