"""Error hierarchy for the scheduling engine.

Three families reach a workflow:
  - InputValidationError: raised synchronously, never sent over the network.
  - TransientError / PermanentError: transport failures from the remote feed.
  - DomainRejectionError: a 2xx response whose body signals failure.

Only TransientError is eligible for automatic retry, and only on idempotent
reads:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    async def fetch_summary(...):
        ...
"""

from enum import Enum


class ValidationCode(str, Enum):
    """Closed set of input validation failures surfaced to the user."""

    NO_STUDENT_SELECTED = "NO_STUDENT_SELECTED"
    NO_SCHEDULE_ENTRY = "NO_SCHEDULE_ENTRY"
    CLASS_TYPE_CAPACITY_EXCEEDED = "CLASS_TYPE_CAPACITY_EXCEEDED"
    MISSING_PAID_FIELDS = "MISSING_PAID_FIELDS"
    MISSING_BATCH_NAME = "MISSING_BATCH_NAME"
    PAST_DATE_REJECTED = "PAST_DATE_REJECTED"
    MALFORMED_TIMEZONE = "MALFORMED_TIMEZONE"
    SCHEDULE_ENTRY_LIMIT = "SCHEDULE_ENTRY_LIMIT"
    STUDENT_LIMIT = "STUDENT_LIMIT"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_CLASS_COUNT = "INVALID_CLASS_COUNT"
    INVALID_TIME = "INVALID_TIME"
    NO_TEACHER_SELECTED = "NO_TEACHER_SELECTED"
    MISSING_REASON = "MISSING_REASON"
    UNPARSEABLE_SUMMARY = "UNPARSEABLE_SUMMARY"
    START_DATE_REQUIRED = "START_DATE_REQUIRED"
    START_DATE_IN_PAST = "START_DATE_IN_PAST"
    END_DATE_REQUIRED = "END_DATE_REQUIRED"
    END_BEFORE_START = "END_BEFORE_START"
    REASON_REQUIRED = "REASON_REQUIRED"


class SchedulingError(Exception):
    """Base exception for all engine errors."""

    pass


class InputValidationError(SchedulingError):
    """Input rejected before any request is built.

    The in-progress form is left untouched so the user can correct and resubmit.
    """

    def __init__(self, code: ValidationCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class MalformedTimezoneError(InputValidationError):
    """Timezone descriptor does not carry a GMT(+|-)HH:MM offset."""

    def __init__(self, descriptor: str) -> None:
        super().__init__(
            ValidationCode.MALFORMED_TIMEZONE,
            f"Invalid timezone format: {descriptor!r}",
        )
        self.descriptor = descriptor


class RemoteError(SchedulingError):
    """Failure talking to the remote scheduling feed.

    Keeps the raw status and message for display.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransientError(RemoteError):
    """Temporary failure that may succeed on retry.

    Examples: network timeouts, connection resets, 5xx responses.
    """

    pass


class RateLimitError(TransientError):
    """Rate limit exceeded (429) - needs longer backoff.

    Inherits from TransientError so tenacity will retry it on reads.
    """

    pass


class PermanentError(RemoteError):
    """Failure that won't succeed on retry.

    Examples: 400 Bad Request, 404 on an endpoint, undecodable body.
    """

    pass


class AuthenticationError(PermanentError):
    """Credentials rejected by the feed (401/403).

    Requires a fresh session, cannot be fixed by retry.
    """

    pass


class DomainRejectionError(RemoteError):
    """2xx response whose body does not report ``status: "success"``.

    Treated like a transport error for user-facing purposes.
    """

    def __init__(self, message: str, body: object = None, status_code: int | None = 200) -> None:
        super().__init__(message, status_code=status_code)
        self.body = body
