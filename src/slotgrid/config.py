"""Engine configuration loaded from environment variables.

Covers the remote feed location, grid granularity, page sizes and logging.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class EngineConfig(BaseSettings):
    """Scheduling engine configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Remote availability/booking feed
    scheduling_api_url: str = Field(
        default="https://live.jetlearn.com",
        description="Base URL of the remote scheduling feed",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Per-request timeout for remote calls",
    )
    fetch_retry_attempts: int = Field(
        default=3,
        description="Attempts for idempotent reads (submissions are never retried)",
    )
    fetch_retry_wait_seconds: float = Field(
        default=1.0,
        description="Fixed wait between read attempts",
    )

    # Endpoint paths
    summary_endpoint: str = "/events/get-bookings-availability-summary/"
    details_endpoint: str = "/events/get-bookings-details/"
    timezones_endpoint: str = "/api/get_timezones/"
    teachers_endpoint: str = "/athena/teachers/"
    students_endpoint: str = "/hs/search-learner/"
    book_class_endpoint: str = "/api/book-class/"
    cancel_class_endpoint: str = "/api/cancel-class/"
    cancel_availability_endpoint: str = "/api/cancel-availability/"
    leave_endpoint: str = "/api/apply-leave/"

    # Display timezone
    default_timezone: str = Field(
        default="(GMT+02:00) CET",
        description="Display timezone used until the remote list is loaded",
    )
    preferred_timezone_marker: str = Field(
        default="CET",
        description="Zone name picked as default from the remote timezone list",
    )

    # Grid
    slot_granularity_minutes: int = Field(
        default=60,
        description="Engine-wide time catalog granularity (60 or 30)",
    )

    # Pagination
    list_page_size: int = 10
    popup_page_size: int = 5
    calendar_page_size: int = 12

    # Workflows
    success_close_delay_seconds: float = Field(
        default=2.0,
        description="Delay before a successful workflow closes its input surface",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("slot_granularity_minutes")
    @classmethod
    def _check_granularity(cls, v: int) -> int:
        if v not in (30, 60):
            raise ValueError("slot_granularity_minutes must be 30 or 60")
        return v


# Singleton pattern
_config: EngineConfig | None = None


def get_config() -> EngineConfig:
    """Get the engine configuration singleton.

    Returns:
        EngineConfig: Engine configuration instance
    """
    global _config
    if _config is None:
        _config = EngineConfig()
    return _config
