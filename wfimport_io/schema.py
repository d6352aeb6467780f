"""Workbook layout schema shared by the sheet readers."""

# Module responsibilities:
# - Describe where the metadata rows and sheets live in a source workbook.
# - Validate layout settings coming from profiles.yaml.

from __future__ import annotations

from typing import Tuple, Union

from pydantic import BaseModel, ConfigDict, field_validator

DATABASE_NAME_ROW = "DatabaseName"
GUID_ROW = "Guid"
COLUMN_TYPE_ROW = "ColumnType"
REQUIRED_METADATA_ROWS = (DATABASE_NAME_ROW, GUID_ROW, COLUMN_TYPE_ROW)


class WorkbookLayout(BaseModel):
    """Sheet names and metadata row order of a source workbook.

    Row 1 of each sheet holds headers; the rows listed in ``metadata_rows``
    follow in that order, then the data rows.
    """

    model_config = ConfigDict(extra="forbid")

    data_sheet: Union[str, int] = 0
    detail_sheet: Union[str, int, None] = None
    metadata_rows: Tuple[str, ...] = REQUIRED_METADATA_ROWS
    id_marker: str = "ID"

    @field_validator("metadata_rows")
    @classmethod
    def _check_metadata_rows(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        missing = [name for name in REQUIRED_METADATA_ROWS if name not in value]
        if missing:
            raise ValueError(f"metadata_rows missing: {', '.join(missing)}")
        return value

    def metadata_index(self, name: str) -> int:
        return self.metadata_rows.index(name)


__all__ = [
    "DATABASE_NAME_ROW",
    "GUID_ROW",
    "COLUMN_TYPE_ROW",
    "REQUIRED_METADATA_ROWS",
    "WorkbookLayout",
]
