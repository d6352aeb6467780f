"""Field mapping readers for exported workflow form workbooks."""

# Module responsibilities:
# - Split a source sheet into column metadata (database name, guid, column type) and data rows.
# - Detect the identifier column and build FieldMapping / DetailColumnMapping sets.
# - Turn every structural problem into a MappingError, which aborts the run.

from __future__ import annotations

import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional

import numpy as np
import pandas as pd

from wfimport.core.errors import MappingError
from wfimport.services.importer.models import DetailColumnMapping, FieldMapping, SourceRow

from .excel_reader import SheetType, read_table
from .schema import COLUMN_TYPE_ROW, DATABASE_NAME_ROW, GUID_ROW, WorkbookLayout
from .utils.log import get_logger

logger = get_logger("mapping")

_UNNAMED_PREFIX = "Unnamed:"
_ID_HEADER = "ID"


@dataclass(slots=True)
class ColumnMeta:
    """Metadata cells of one sheet column."""

    label: str
    header: str
    database_name: str
    guid: str
    column_type: str


@dataclass(slots=True)
class ParsedSheet:
    columns: List[ColumnMeta]
    id_column: Optional[str]
    rows: List[SourceRow]


@dataclass(slots=True)
class MappingSheet:
    """Main sheet: form field mappings, identifier column and data rows."""

    field_mappings: List[FieldMapping]
    id_column: Optional[str]
    rows: List[SourceRow]
    dropped_columns: List[str] = field(default_factory=list)


@dataclass(slots=True)
class DetailSheet:
    """Item list sheet: column mappings and child rows keyed by the parent id column."""

    column_mappings: List[DetailColumnMapping]
    id_column: str
    rows: List[SourceRow]
    dropped_columns: List[str] = field(default_factory=list)


def native_value(value: Any) -> Any:
    """Convert pandas/numpy scalars to plain Python objects; NaN/NaT become None."""

    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    if value is pd.NaT or value is pd.NA:
        return None
    return value


def _meta_text(value: Any) -> str:
    value = native_value(value)
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _friendly_name(label: str) -> str:
    text = label.strip()
    return "" if text.startswith(_UNNAMED_PREFIX) else text


def _is_blank(value: Any) -> bool:
    value = native_value(value)
    return value is None or (isinstance(value, str) and not value.strip())


def _load_frame(path: Path, sheet: SheetType) -> pd.DataFrame:
    try:
        return read_table(Path(path), sheet)
    except FileNotFoundError as exc:
        raise MappingError(str(exc)) from exc
    except (ValueError, KeyError, OSError, zipfile.BadZipFile) as exc:
        raise MappingError(f"Cannot read sheet {sheet!r} from {path}: {exc}") from exc


def parse_sheet(frame: pd.DataFrame, layout: WorkbookLayout, *, sheet: SheetType) -> ParsedSheet:
    """Separate metadata rows from data rows and locate the identifier column."""

    meta_count = len(layout.metadata_rows)
    if len(frame.index) < meta_count:
        raise MappingError(
            f"Sheet {sheet!r} has {len(frame.index)} rows below the header; "
            f"expected metadata rows {', '.join(layout.metadata_rows)}"
        )

    labels = [str(column) for column in frame.columns]
    frame = frame.set_axis(labels, axis=1)
    db_row = frame.iloc[layout.metadata_index(DATABASE_NAME_ROW)]
    guid_row = frame.iloc[layout.metadata_index(GUID_ROW)]
    type_row = frame.iloc[layout.metadata_index(COLUMN_TYPE_ROW)]

    columns: List[ColumnMeta] = []
    for position, label in enumerate(labels):
        columns.append(
            ColumnMeta(
                label=label,
                header=_friendly_name(label),
                database_name=_meta_text(db_row.iloc[position]),
                guid=_meta_text(guid_row.iloc[position]),
                column_type=_meta_text(type_row.iloc[position]),
            )
        )

    id_column = detect_id_column(columns, layout.id_marker)

    rows: List[SourceRow] = []
    data = frame.iloc[meta_count:]
    for position, (_, series) in enumerate(data.iterrows(), start=1):
        values = {label: native_value(series.iloc[idx]) for idx, label in enumerate(labels)}
        if all(_is_blank(value) for value in values.values()):
            continue
        rows.append(SourceRow(position=position, values=values))

    logger.info(
        "io.mapping sheet=%s columns=%d rows=%d id_column=%s",
        sheet,
        len(columns),
        len(rows),
        id_column or "-",
    )
    return ParsedSheet(columns=columns, id_column=id_column, rows=rows)


def detect_id_column(columns: Iterable[ColumnMeta], marker: str = _ID_HEADER) -> Optional[str]:
    """Column typed with the ID marker, else a header named ``ID``, else None."""

    columns = list(columns)
    wanted = marker.strip().upper()
    for column in columns:
        if column.column_type.strip().upper() == wanted:
            return column.label
    for column in columns:
        if column.header.upper() == _ID_HEADER:
            return column.label
    return None


def _choice_lookup(choice_columns: Iterable[str]) -> set[str]:
    return {str(item).strip().lower() for item in choice_columns if str(item).strip()}


def _is_explicit_choice(column: ColumnMeta, lookup: set[str]) -> bool:
    return bool(lookup) and (
        column.header.lower() in lookup
        or column.database_name.lower() in lookup
        or column.label.strip().lower() in lookup
    )


def read_field_mappings(
    path: Path,
    layout: Optional[WorkbookLayout] = None,
    *,
    choice_columns: Iterable[str] = (),
) -> MappingSheet:
    """Read the main sheet into field mappings and data rows.

    Columns without a guid or database name are dropped silently, as is the
    identifier column. Raises ``MappingError`` when the workbook, the sheet or
    its metadata rows are missing, or when no usable mapping remains.
    """

    layout = layout or WorkbookLayout()
    parsed = parse_sheet(_load_frame(path, layout.data_sheet), layout, sheet=layout.data_sheet)
    lookup = _choice_lookup(choice_columns)

    mappings: List[FieldMapping] = []
    dropped: List[str] = []
    for column in parsed.columns:
        if column.label == parsed.id_column:
            continue
        mapping = FieldMapping(
            source_column=column.label,
            friendly_name=column.header,
            database_name=column.database_name,
            field_guid=column.guid,
            column_type_hint=column.column_type,
            explicit_choice=_is_explicit_choice(column, lookup),
        )
        if mapping.is_valid:
            mappings.append(mapping)
        else:
            dropped.append(column.label)

    if dropped:
        logger.debug("io.mapping dropped_columns=%s", ",".join(dropped))
    if not mappings:
        raise MappingError(f"No field mappings found in sheet {layout.data_sheet!r} of {path}")
    return MappingSheet(field_mappings=mappings, id_column=parsed.id_column, rows=parsed.rows, dropped_columns=dropped)


def read_detail_mappings(
    path: Path,
    layout: Optional[WorkbookLayout] = None,
    *,
    choice_columns: Iterable[str] = (),
) -> DetailSheet:
    """Read the item list sheet; its identifier column links child rows to parent rows."""

    layout = layout or WorkbookLayout()
    if layout.detail_sheet is None:
        raise MappingError("No detail sheet configured for this import")
    parsed = parse_sheet(_load_frame(path, layout.detail_sheet), layout, sheet=layout.detail_sheet)
    if parsed.id_column is None:
        raise MappingError(f"Detail sheet {layout.detail_sheet!r} has no identifier column")
    lookup = _choice_lookup(choice_columns)

    mappings: List[DetailColumnMapping] = []
    dropped: List[str] = []
    for column in parsed.columns:
        if column.label == parsed.id_column:
            continue
        mapping = DetailColumnMapping(
            source_column=column.label,
            friendly_name=column.header,
            database_name=column.database_name,
            column_guid=column.guid,
            column_type_hint=column.column_type,
            explicit_choice=_is_explicit_choice(column, lookup),
        )
        if mapping.is_valid:
            mappings.append(mapping)
        else:
            dropped.append(column.label)

    if dropped:
        logger.debug("io.mapping detail_dropped_columns=%s", ",".join(dropped))
    return DetailSheet(column_mappings=mappings, id_column=parsed.id_column, rows=parsed.rows, dropped_columns=dropped)



__all__ = [
    "ColumnMeta",
    "DetailSheet",
    "MappingSheet",
    "ParsedSheet",
    "detect_id_column",
    "native_value",
    "parse_sheet",
    "read_detail_mappings",
    "read_field_mappings",
]
