from __future__ import annotations

import faulthandler
import os
import socket
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Logs must never land in the source tree; set before any wfimport import.
os.environ.setdefault("WFIMPORT_HOME", tempfile.mkdtemp(prefix="wfimport-tests-"))

faulthandler.enable()  # Ensure crashes emit tracebacks.
socket.setdefaulttimeout(10)

from openpyxl import Workbook

BPS_ENV_VARS = (
    "BPS_BASE_URL",
    "BPS_CLIENT_ID",
    "BPS_CLIENT_SECRET",
    "BPS_DATABASE_ID",
    "BPS_TIMEOUT_SEC",
    "BPS_MAX_RETRIES",
    "BPS_BASE_DELAY_SEC",
)

MAIN_SHEET: list[list[Any]] = [
    [" ", "Title", "Amount", "Approved", "Due", "Customer", "Notes", "Scratch"],
    ["", "WFD_AttText1", "WFD_AttDecimal1", "WFD_AttBool1", "WFD_AttDateTime1", "WFD_AttChoose1", "WFD_AttLong1", ""],
    ["", "g-title", "g-amount", "g-approved", "g-due", "g-customer", "g-notes", ""],
    [
        "ID",
        "Single line of text",
        "Floating-point number",
        "Yes / No choice",
        "Date and time",
        "Choice field",
        "Multiple lines of text",
        "",
    ],
    ["A-1", "First", 10.5, "yes", "2024-03-01 10:00", "19#Acme", "note one", "x"],
    ["A-2", "Second", "1,5", "no", "not a date", "Globex", None, "y"],
    ["A-3", "Third", 7, "1", "2024-03-03", "21#Initech", "note three", "z"],
]

DETAIL_SHEET: list[list[Any]] = [
    [" ", "Product", "Qty", "Price"],
    ["", "DET_Att1", "DET_Int1", "DET_Value1"],
    ["", "c-product", "c-qty", "c-price"],
    ["ID", "", "", ""],
    ["A-1", "Widget", 2, 9.99],
    ["A-1", "Gadget", 1, "4,50"],
    ["A-3", "Doohickey", 5, 1],
]


def write_workbook(path: Path, sheets: dict[str, Sequence[Sequence[Any]]]) -> Path:
    """Create an xlsx file with one worksheet per entry, rows written as given."""

    workbook = Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets.items():
        worksheet = workbook.create_sheet(title=title)
        for row in rows:
            worksheet.append(list(row))
    workbook.save(path)
    workbook.close()
    return path


@pytest.fixture(autouse=True)
def _isolate_bps_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in BPS_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def source_workbook(tmp_path: Path) -> Path:
    return write_workbook(tmp_path / "orders.xlsx", {"Data": MAIN_SHEET, "Details": DETAIL_SHEET})


@pytest.fixture
def workbook_factory(tmp_path: Path) -> Callable[..., Path]:
    def _build(sheets: dict[str, Sequence[Sequence[Any]]], name: str = "source.xlsx") -> Path:
        return write_workbook(tmp_path / name, sheets)

    return _build
