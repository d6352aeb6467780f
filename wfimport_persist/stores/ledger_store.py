"""
RESPONSIBILITIES
- Manage the XLSX-backed status ledger recording one outcome per imported row.
- Keep the __START__/__END__ run sentinels first and last around the data rows.
PROCESS OVERVIEW
1. load_ledger() reads the Status sheet into LedgerEntry objects keyed by row id.
   A missing or unreadable file yields an empty mapping, so a broken ledger leads
   to reprocessing instead of a crash.
2. write_start() upserts the __START__ sentinel when a run begins.
3. update_status() rewrites the sheet with one row upserted: existing rows keep
   their order, unseen ids are appended before __END__.
4. write_end() upserts the __END__ sentinel when a run finishes.

Every call is a full read-modify-write without locking. One ledger file must
only be driven by a single process at a time.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from wfimport_persist.stores.base_store import BaseStore, StoreReadError, StoreWriteError
from wfimport_persist.utils.excel_io import read_sheet, write_sheet
from wfimport_persist.utils.log import get_logger

LEDGER_SHEET_NAME = "Status"
LEDGER_COLUMNS: tuple[str, ...] = ("ID", "Status", "ImportedDate", "ErrorMessage")

START_SENTINEL = "__START__"
END_SENTINEL = "__END__"
SENTINEL_IDS = frozenset({START_SENTINEL, END_SENTINEL})
METADATA_STATUS = "Metadata"


class LedgerStatus(str, Enum):
    NOT_STARTED = "NotStarted"
    SUCCESS = "Success"
    ERROR = "Error"

    @classmethod
    def parse(cls, value: object) -> "LedgerStatus":
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.NOT_STARTED


@dataclass(slots=True)
class LedgerEntry:
    """One persisted row outcome."""

    row_id: str
    status: LedgerStatus
    imported_at: str = ""
    error_message: str = ""

    def to_record(self) -> dict[str, object]:
        return {
            "ID": self.row_id,
            "Status": self.status.value,
            "ImportedDate": self.imported_at,
            "ErrorMessage": self.error_message,
        }


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _sentinel_record(row_id: str) -> dict[str, object]:
    return {"ID": row_id, "Status": METADATA_STATUS, "ImportedDate": _utcnow_iso(), "ErrorMessage": ""}


class StatusLedger(BaseStore):
    """Per-row status store living in a single-sheet workbook."""

    sheet_name = LEDGER_SHEET_NAME
    columns = LEDGER_COLUMNS

    def __init__(self, path: Path | str, *, logger: logging.Logger | None = None) -> None:
        super().__init__(path, logger=logger or get_logger("ledger"))

    # Reading -----------------------------------------------------------------------

    def load(self) -> dict[str, LedgerEntry]:
        """Return data entries keyed by row id; never raises."""

        try:
            rows = read_sheet(self.path, self.sheet_name, self.columns)
        except Exception as exc:  # noqa: BLE001 - a broken ledger means reprocessing, not a crash
            self.logger.error("ledger.load unreadable path=%s error=%s", self.path, exc)
            return {}

        entries: dict[str, LedgerEntry] = {}
        for row in rows:
            row_id = _cell_text(row.get("ID"))
            if not row_id or row_id in SENTINEL_IDS:
                continue
            entries[row_id] = LedgerEntry(
                row_id=row_id,
                status=LedgerStatus.parse(row.get("Status")),
                imported_at=_cell_text(row.get("ImportedDate")),
                error_message=_cell_text(row.get("ErrorMessage")),
            )
        self.logger.debug("ledger.load path=%s entries=%d", self.path, len(entries))
        return entries

    @staticmethod
    def is_imported(entry: LedgerEntry | None) -> bool:
        return entry is not None and entry.status is LedgerStatus.SUCCESS

    def summary(self) -> dict[str, int]:
        counts = {status.value: 0 for status in LedgerStatus}
        for entry in self.load().values():
            counts[entry.status.value] += 1
        return counts

    def failed_entries(self) -> list[LedgerEntry]:
        return [entry for entry in self.load().values() if entry.status is LedgerStatus.ERROR]

    # Writing -----------------------------------------------------------------------

    def update(self, row_id: str, status: LedgerStatus, error_message: str | None = None) -> LedgerEntry:
        """Upsert the entry for *row_id*. Raises ``StoreWriteError`` when the file cannot be saved."""

        key = str(row_id).strip()
        if not key or key in SENTINEL_IDS:
            raise ValueError(f"invalid ledger row id: {row_id!r}")
        entry = LedgerEntry(
            row_id=key,
            status=LedgerStatus(status),
            imported_at=_utcnow_iso(),
            error_message=error_message or "",
        )
        start, data, end = self._read_sections()
        data[key] = entry.to_record()
        self._write_sections(start, data, end)
        self.logger.debug("ledger.update row_id=%s status=%s", key, entry.status.value)
        return entry

    def write_start(self) -> None:
        start, data, end = self._read_sections()
        self._write_sections(_sentinel_record(START_SENTINEL), data, end)
        self.logger.info("ledger.start path=%s rows=%d", self.path, len(data))

    def write_end(self) -> None:
        start, data, _ = self._read_sections()
        self._write_sections(start, data, _sentinel_record(END_SENTINEL))
        self.logger.info("ledger.end path=%s rows=%d", self.path, len(data))

    # Internal helpers --------------------------------------------------------------

    def _read_sections(
        self,
    ) -> tuple[dict[str, object] | None, dict[str, dict[str, object]], dict[str, object] | None]:
        try:
            rows = read_sheet(self.path, self.sheet_name, self.columns)
        except StoreReadError as exc:
            backup = self.path.with_name(self.path.name + ".corrupt")
            self.logger.error(
                "ledger.read unreadable path=%s backup=%s error=%s", self.path, backup, exc
            )
            try:
                os.replace(self.path, backup)
            except OSError as move_exc:
                raise StoreWriteError(f"Cannot move unreadable ledger {self.path} aside: {move_exc}") from move_exc
            rows = []

        start: dict[str, object] | None = None
        end: dict[str, object] | None = None
        data: dict[str, dict[str, object]] = {}
        for row in rows:
            row_id = _cell_text(row.get("ID"))
            if row_id == START_SENTINEL:
                start = row
            elif row_id == END_SENTINEL:
                end = row
            elif row_id:
                data[row_id] = row
        return start, data, end

    def _write_sections(
        self,
        start: dict[str, object] | None,
        data: dict[str, dict[str, object]],
        end: dict[str, object] | None,
    ) -> None:
        rows: list[dict[str, object]] = []
        if start is not None:
            rows.append(start)
        rows.extend(data.values())
        if end is not None:
            rows.append(end)
        write_sheet(self.path, self.sheet_name, rows, self.columns)


def load_ledger(path: Path | str) -> dict[str, LedgerEntry]:
    """Load ledger entries from *path*."""

    return StatusLedger(path).load()


def is_imported(entry: LedgerEntry | None) -> bool:
    """Return True when the entry records a successful import."""

    return StatusLedger.is_imported(entry)


def update_status(
    path: Path | str, row_id: str, status: LedgerStatus, error_message: str | None = None
) -> LedgerEntry:
    """Upsert one row outcome in the ledger at *path*."""

    return StatusLedger(path).update(row_id, status, error_message)


def write_start(path: Path | str) -> None:
    StatusLedger(path).write_start()


def write_end(path: Path | str) -> None:
    StatusLedger(path).write_end()


__all__ = [
    "LEDGER_SHEET_NAME",
    "LEDGER_COLUMNS",
    "START_SENTINEL",
    "END_SENTINEL",
    "METADATA_STATUS",
    "LedgerStatus",
    "LedgerEntry",
    "StatusLedger",
    "load_ledger",
    "is_imported",
    "update_status",
    "write_start",
    "write_end",
]
