"""Structured logging configuration using structlog.

Provides JSON output for production and human-readable console output for development.
All logging throughout the project should use get_logger() instead of print().
"""

import logging
import sys
from typing import Any

import structlog

# Signatures of errors injected by browser extensions into the host page.
# They never describe a domain failure.
EXTENSION_NOISE_KEYWORDS: tuple[str, ...] = (
    "writing",
    "template",
    "permission error",
    "chrome-extension",
    "extension",
    "content.js",
    "content_script",
    "background.js",
    "popup.js",
    "httperror: false",
    "httpstatus: 200",
    "code: 403",
)


def setup_logging(json_output: bool = False, log_level: str = "INFO") -> None:
    """Configure structlog with appropriate processors and output format.

    Args:
        json_output: If True, output JSON (production). If False, console format (dev).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    # Convert string log level to logging constant
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Bridge stdlib logging (httpx) to the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )
    logging.getLogger().handlers = []
    logging.getLogger().addHandler(logging.StreamHandler(sys.stdout))


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance bound with the module name.

    Args:
        name: Logger name (typically __name__ from calling module).

    Returns:
        Configured structlog logger with module name context.
    """
    return structlog.get_logger(name)


def is_extension_noise(error: Any) -> bool:
    """Check whether an error matches a known browser-extension signature.

    Args:
        error: Exception or error-like object (may carry code/httpStatus attributes).

    Returns:
        True if the error is extension noise and should not surface.
    """
    message = str(getattr(error, "message", None) or error or "").lower()
    if any(keyword in message for keyword in EXTENSION_NOISE_KEYWORDS):
        return True

    code = getattr(error, "code", None)
    http_status = getattr(error, "httpStatus", None)
    http_error = getattr(error, "httpError", None)
    if code == 403 and (http_status == 200 or http_error is False):
        return True

    stack = str(getattr(error, "stack", "") or "")
    return "content.js" in stack or "extension" in stack


def log_error(logger: structlog.BoundLogger, event: str, error: Any, **context: Any) -> bool:
    """Log an error unless it is extension noise.

    Args:
        logger: Bound logger to write to.
        event: Event name for the log entry.
        error: The error being reported.
        **context: Extra key/value context.

    Returns:
        True if the error was logged as a real error, False if it was filtered.
    """
    if is_extension_noise(error):
        logger.debug(
            "extension_error_filtered",
            code=getattr(error, "code", None),
            name=type(error).__name__,
        )
        return False
    logger.error(event, error=str(error), type=type(error).__name__, **context)
    return True
