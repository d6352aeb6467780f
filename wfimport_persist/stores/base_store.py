"""
RESPONSIBILITIES
- Define the exceptions shared by XLSX-backed stores.
- Describe the read-modify-write contract concrete stores follow.
PROCESS OVERVIEW
1. A store resolves its workbook path once at construction.
2. Reads load the whole sheet into dictionaries keyed by canonical columns.
3. Writes rebuild the sheet in memory and swap it in atomically.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path


class StoreError(RuntimeError):
    """Base exception type for persistence-layer failures."""


class StoreReadError(StoreError):
    """Raised when a workbook exists but cannot be parsed."""


class StoreWriteError(StoreError):
    """Raised when a workbook cannot be written back to disk."""


class BaseStore(ABC):
    """Abstract class shared by concrete XLSX-backed stores."""

    sheet_name: str
    columns: tuple[str, ...]

    def __init__(self, path: Path | str, *, logger: logging.Logger | None = None) -> None:
        self.path = Path(path).expanduser()
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def load(self) -> object:
        """Return the store content; implementations decide how read failures surface."""

    @abstractmethod
    def summary(self) -> dict[str, int]:
        """Return record counts grouped by a store specific key."""


__all__ = ["StoreError", "StoreReadError", "StoreWriteError", "BaseStore"]
