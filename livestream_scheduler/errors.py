"""Exception types and HTTP error helpers shared by the scheduler."""
from __future__ import annotations

from typing import Optional

from googleapiclient.errors import HttpError

STATUS_HINTS = {
    400: "Bad Request: check if parameters or fields are missing.",
    401: "Unauthorized: access token is missing or expired.",
    403: "Forbidden: token is valid but lacks required scope or quota.",
    404: "Not Found: resource like broadcast or stream ID may not exist.",
    409: "Conflict: broadcast time may overlap with another.",
    429: "Too Many Requests: quota or rate limit reached.",
    500: "Internal Server Error: YouTube server issue, try again later.",
}


class SchedulerError(RuntimeError):
    """Base class for errors raised by the scheduler."""


class ConfigError(SchedulerError):
    """Raised when the configuration is missing a required value."""


class AuthError(SchedulerError):
    """Raised when no valid OAuth session can be obtained."""


class ChannelVerificationError(SchedulerError):
    """Raised when the authenticated account is not the expected channel."""


class ConflictError(SchedulerError):
    """Raised when a broadcast already occupies the stream at that time."""


class BindError(SchedulerError):
    """Raised when a created broadcast could not be bound to its stream."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


def http_status(exc: BaseException) -> Optional[int]:
    """Return the HTTP status of an API error, if it carries one."""

    if isinstance(exc, HttpError):
        try:
            return int(exc.resp.status)
        except (AttributeError, TypeError, ValueError):
            return None
    return getattr(exc, "status", None)


def requires_reauthorization(status: Optional[int]) -> bool:
    return status in (401, 403)


def describe_http_error(exc: BaseException) -> str:
    """Build a one-line operator message for an upstream failure."""

    status = http_status(exc)
    if isinstance(exc, HttpError):
        detail = exc.reason if hasattr(exc, "reason") else str(exc)
    else:
        detail = str(exc) or exc.__class__.__name__
    if status is None:
        return f"{exc.__class__.__name__}: {detail}"
    hint = STATUS_HINTS.get(status, "Unexpected error.")
    suffix = " Re-authorization required." if requires_reauthorization(status) else ""
    return f"HTTP {status} - {hint} ({detail}){suffix}"
