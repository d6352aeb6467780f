"""Exceptions raised by the workflow engine API client."""

from __future__ import annotations

from typing import Any, Mapping


class BpsError(RuntimeError):
    """Base error raised for workflow engine API failures."""

    def __init__(self, message: str, *, status_code: int | None = None, payload: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


class BpsAuthError(BpsError):
    """Raised when the client credentials cannot be exchanged for a token. Always fatal for a run."""


class BpsRetryableError(BpsError):
    """Raised for transient I/O issues (connection failures, timeouts, 5xx except 501)."""


class BpsRequestError(BpsError):
    """Raised for permanent failures: 4xx responses, unexpected statuses and unknown errors."""


def describe_error_payload(payload: Mapping[str, Any]) -> str:
    """Render the error body returned by the API as a single line.

    Structured errors carry ``type``/``description``/``errorGuid``; generic ones
    ``message`` or ``error``. Anything else falls back to the raw ``body`` text.
    """

    description = payload.get("description")
    if description:
        error_type = payload.get("type")
        text = f"{error_type}: {description}" if error_type else str(description)
        guid = payload.get("errorGuid")
        if guid:
            text = f"{text} (errorGuid={guid})"
        return text
    for key in ("message", "error", "body"):
        value = payload.get(key)
        if value:
            return str(value)
    return ""


__all__ = [
    "BpsError",
    "BpsAuthError",
    "BpsRetryableError",
    "BpsRequestError",
    "describe_error_payload",
]
