"""
RESPONSIBILITIES
- Resolve default locations for store workbooks.
PROCESS OVERVIEW
1. ledger_path_for() places the status ledger next to the source workbook.
"""

from __future__ import annotations

import os
from pathlib import Path

LEDGER_SUFFIX = "_status.xlsx"


def ledger_path_for(source: str | os.PathLike[str]) -> Path:
    """Return ``<dir>/<source stem>_status.xlsx`` for a source workbook."""

    source_path = Path(source).expanduser().resolve()
    return source_path.with_name(source_path.stem + LEDGER_SUFFIX)
