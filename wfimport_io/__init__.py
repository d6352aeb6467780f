"""`wfimport_io` top-level package exports the spreadsheet readers used by imports."""

# Module responsibilities:
# - Re-export the workbook layout schema and the mapping/row readers.

from __future__ import annotations

from .excel_reader import read_table
from .mapping import DetailSheet, MappingSheet, read_detail_mappings, read_field_mappings
from .schema import WorkbookLayout

__all__ = [
    "read_table",
    "DetailSheet",
    "MappingSheet",
    "read_detail_mappings",
    "read_field_mappings",
    "WorkbookLayout",
]
