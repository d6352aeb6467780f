"""
Persistence facade exposing the XLSX-backed status ledger.
"""

from .stores.ledger_store import (
    LedgerEntry,
    LedgerStatus,
    StatusLedger,
    is_imported,
    load_ledger,
    update_status,
    write_end,
    write_start,
)
from .utils.paths import ledger_path_for

__all__ = [
    "LedgerEntry",
    "LedgerStatus",
    "StatusLedger",
    "load_ledger",
    "is_imported",
    "update_status",
    "write_start",
    "write_end",
    "ledger_path_for",
]
