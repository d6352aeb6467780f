"""Excel input helpers."""

# Module responsibilities:
# - Provide a thin wrapper around pandas.read_excel with strong validation.
# - Keep every cell as a raw Python object so type decisions stay with the importer.

from __future__ import annotations

from pathlib import Path
from typing import Union

import pandas as pd

from .utils.log import get_logger

logger = get_logger("excel_reader")

SheetType = Union[str, int]


def read_table(path: Path, sheet: SheetType = 0) -> pd.DataFrame:
    """Load one worksheet as an object-typed DataFrame.

    Row 1 becomes the column labels. Blank headers surface as ``Unnamed: N``.
    Strings such as ``NA`` are kept verbatim instead of turning into NaN.

    Args:
        path: Path to the workbook.
        sheet: Sheet name or zero-based index.

    Returns:
        DataFrame containing every remaining row of the sheet.

    Raises:
        FileNotFoundError: When the Excel file does not exist.
        ValueError: When pandas cannot parse the workbook or find the sheet.
    """

    if not path.exists():
        raise FileNotFoundError(f"Source workbook not found: {path}")

    logger.info("io.excel read path=%s sheet=%s", path, sheet)

    try:
        df = pd.read_excel(path, sheet_name=sheet, header=0, dtype=object, keep_default_na=False)
    except ValueError as exc:
        logger.error("io.excel read_failed path=%s sheet=%s error=%s", path, sheet, exc)
        raise

    if isinstance(df, dict):
        raise ValueError("read_table expects a single sheet; received multiple sheets")

    logger.info("io.excel loaded rows=%d columns=%d", len(df.index), len(df.columns))
    return df


__all__ = ["SheetType", "read_table"]
