"""Progress reporting and cooperative cancellation for the row loop."""

from __future__ import annotations

import threading
from typing import Protocol


class ProgressObserver(Protocol):
    """Receives one notification per visited row and may request a stop."""

    def on_progress(
        self,
        processed: int,
        total: int,
        current_row: str,
        success_count: int,
        error_count: int,
        skipped_count: int,
    ) -> None:  # pragma: no cover - interface definition
        ...

    def is_cancelled(self) -> bool:  # pragma: no cover - interface definition
        ...


class CancellationToken:
    """Thread-safe stop flag; safe to set from a signal handler or another thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def reset(self) -> None:
        self._event.clear()


class NullObserver:
    """Observer that ignores notifications and optionally delegates cancellation."""

    def __init__(self, token: CancellationToken | None = None) -> None:
        self._token = token

    def on_progress(
        self,
        processed: int,
        total: int,
        current_row: str,
        success_count: int,
        error_count: int,
        skipped_count: int,
    ) -> None:
        return None

    def is_cancelled(self) -> bool:
        return self._token.is_cancelled() if self._token is not None else False


__all__ = ["ProgressObserver", "CancellationToken", "NullObserver"]
