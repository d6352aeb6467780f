"""
RESPONSIBILITIES
- Read and write single-sheet store workbooks via openpyxl.
- Keep writes atomic using a temporary file swap.
- Make arbitrary text safe for XLSX cells.
PROCESS OVERVIEW
1. read_sheet() loads rows into dictionaries keyed by canonical columns.
2. write_sheet() rebuilds the workbook and replaces the target file in one step.
3. safe_cell_text() strips characters XLSX cannot hold and truncates long text.

Workbooks are not locked: a store file must only be used by one process at a time.
"""

from __future__ import annotations

import os
import zipfile
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import InvalidFileException

from wfimport_persist.stores.base_store import StoreReadError, StoreWriteError

CELL_TEXT_LIMIT = 32767
_TRUNCATION_MARK = "..."


def safe_cell_text(value: object) -> str:
    """Return *value* as text that openpyxl accepts and Excel can display."""

    if value is None:
        return ""
    text = ILLEGAL_CHARACTERS_RE.sub("", str(value))
    if len(text) > CELL_TEXT_LIMIT:
        text = text[: CELL_TEXT_LIMIT - len(_TRUNCATION_MARK)] + _TRUNCATION_MARK
    return text


def _tmp_path(path: Path) -> Path:
    return path.with_name(path.name + ".tmp")


def _atomic_save(workbook: Workbook, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = _tmp_path(path)
    workbook.save(tmp_path)
    os.replace(tmp_path, path)


def read_sheet(path: Path, sheet_name: str, columns: Sequence[str]) -> list[dict[str, object]]:
    """Return worksheet content as dictionaries keyed by *columns*.

    A missing file or sheet yields an empty list. An unreadable workbook raises
    ``StoreReadError``.
    """

    if not path.exists():
        return []
    try:
        workbook = load_workbook(path, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise StoreReadError(f"Cannot read workbook {path}: {exc}") from exc
    try:
        if sheet_name not in workbook.sheetnames:
            return []
        worksheet = workbook[sheet_name]
        rows_iter = worksheet.iter_rows(values_only=True)
        try:
            header_row = next(rows_iter)
        except StopIteration:
            return []
        header = [str(cell).strip() if cell is not None else "" for cell in header_row]
        index_map = {name: idx for idx, name in enumerate(header) if name}
        normalized_rows: list[dict[str, object]] = []
        for raw_values in rows_iter:
            if raw_values is None:
                continue
            if not any(cell is not None and str(cell).strip() for cell in raw_values):
                continue
            record: dict[str, object] = {}
            for column in columns:
                idx = index_map.get(column)
                if idx is None or idx >= len(raw_values):
                    record[column] = ""
                else:
                    value = raw_values[idx]
                    record[column] = "" if value is None else value
            normalized_rows.append(record)
        return normalized_rows
    finally:
        workbook.close()


def write_sheet(
    path: Path,
    sheet_name: str,
    rows: Iterable[Mapping[str, object]],
    columns: Sequence[str],
) -> None:
    """Write rows to a worksheet atomically, replacing any previous content."""

    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = sheet_name
    worksheet.append(list(columns))
    for row in rows:
        worksheet.append([safe_cell_text(row.get(column, "")) for column in columns])
    try:
        _atomic_save(workbook, path)
    except OSError as exc:
        raise StoreWriteError(f"Cannot write workbook {path}: {exc}") from exc
    finally:
        workbook.close()


__all__ = ["CELL_TEXT_LIMIT", "safe_cell_text", "read_sheet", "write_sheet"]
