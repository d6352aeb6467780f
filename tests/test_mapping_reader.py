from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from conftest import DETAIL_SHEET, MAIN_SHEET
from wfimport.core.errors import MappingError
from wfimport.services.importer.classifier import DETAIL_COLUMN_PATTERNS, FieldType, classify
from wfimport.services.importer.driver import build_rows
from wfimport_io.mapping import parse_sheet, read_detail_mappings, read_field_mappings
from wfimport_io.schema import WorkbookLayout

LAYOUT = WorkbookLayout(data_sheet="Data", detail_sheet="Details")


def test_field_mappings_follow_metadata_rows(source_workbook: Path) -> None:
    sheet = read_field_mappings(source_workbook, LAYOUT)

    assert sheet.id_column == " "
    assert [mapping.source_column for mapping in sheet.field_mappings] == [
        "Title",
        "Amount",
        "Approved",
        "Due",
        "Customer",
        "Notes",
    ]
    assert sheet.dropped_columns == ["Scratch"]
    amount = sheet.field_mappings[1]
    assert (amount.database_name, amount.field_guid, amount.column_type_hint) == (
        "WFD_AttDecimal1",
        "g-amount",
        "Floating-point number",
    )
    types = [
        classify(mapping.column_type_hint, mapping.database_name, mapping.explicit_choice)
        for mapping in sheet.field_mappings
    ]
    assert types == [
        FieldType.STRING,
        FieldType.DECIMAL,
        FieldType.BOOLEAN,
        FieldType.DATE_TIME,
        FieldType.CHOICE,
        FieldType.LONG_TEXT,
    ]


def test_data_rows_skip_metadata_and_keep_ids(source_workbook: Path) -> None:
    sheet = read_field_mappings(source_workbook, LAYOUT)
    rows = build_rows(sheet.rows, sheet.id_column)

    assert [row.row_id for row in rows] == ["A-1", "A-2", "A-3"]
    assert [row.position for row in rows] == [1, 2, 3]
    assert rows[0].fields["Title"] == "First"
    assert rows[0].fields["Amount"] == 10.5
    assert rows[1].fields["Amount"] == "1,5"


def test_choice_columns_force_choice(source_workbook: Path) -> None:
    sheet = read_field_mappings(source_workbook, LAYOUT, choice_columns=["wfd_atttext1"])
    title = sheet.field_mappings[0]
    assert title.explicit_choice
    assert classify(title.column_type_hint, title.database_name, title.explicit_choice) is FieldType.CHOICE


def test_header_named_id_is_used_without_marker(workbook_factory) -> None:
    rows = [list(row) for row in MAIN_SHEET[:5]]
    rows[0][0] = "ID"
    rows[3][0] = ""
    path = workbook_factory({"Data": rows})

    sheet = read_field_mappings(path, LAYOUT)
    assert sheet.id_column == "ID"
    assert build_rows(sheet.rows, sheet.id_column)[0].row_id == "A-1"


def test_missing_identifier_column_uses_positions(workbook_factory) -> None:
    rows = [row[1:] for row in MAIN_SHEET]
    path = workbook_factory({"Data": rows})

    sheet = read_field_mappings(path, LAYOUT)
    assert sheet.id_column is None
    assert [row.row_id for row in build_rows(sheet.rows, sheet.id_column)] == ["1", "2", "3"]


def test_blank_data_rows_are_ignored() -> None:
    header, *body = MAIN_SHEET[:6]
    body.insert(4, [None] * len(header))
    frame = pd.DataFrame(body, columns=header, dtype=object)

    parsed = parse_sheet(frame, LAYOUT, sheet="Data")
    assert [row.position for row in parsed.rows] == [1, 3]
    assert [row.values[" "] for row in parsed.rows] == ["A-1", "A-2"]


def test_missing_metadata_rows_raise(workbook_factory) -> None:
    path = workbook_factory({"Data": MAIN_SHEET[:2]})
    with pytest.raises(MappingError, match="metadata rows"):
        read_field_mappings(path, LAYOUT)


def test_sheet_without_mappings_raises(workbook_factory) -> None:
    path = workbook_factory(
        {"Data": [["ID", "B"], ["x", "WFD_AttText1"], ["y", ""], ["ID", "z"], ["r1", "v"]]}
    )
    with pytest.raises(MappingError, match="No field mappings"):
        read_field_mappings(path, LAYOUT)


def test_missing_sheet_or_file_raises(source_workbook: Path, tmp_path: Path) -> None:
    with pytest.raises(MappingError):
        read_field_mappings(source_workbook, WorkbookLayout(data_sheet="Nope"))
    with pytest.raises(MappingError, match="not found"):
        read_field_mappings(tmp_path / "missing.xlsx", LAYOUT)


def test_detail_sheet_mappings_and_rows(source_workbook: Path) -> None:
    detail = read_detail_mappings(source_workbook, LAYOUT)

    assert detail.id_column == " "
    assert [mapping.column_guid for mapping in detail.column_mappings] == ["c-product", "c-qty", "c-price"]
    assert [
        classify(mapping.column_type_hint, mapping.database_name, patterns=DETAIL_COLUMN_PATTERNS)
        for mapping in detail.column_mappings
    ] == [FieldType.STRING, FieldType.INTEGER, FieldType.DECIMAL]
    assert [row.values[" "] for row in detail.rows] == ["A-1", "A-1", "A-3"]
    assert len(detail.rows) == len(DETAIL_SHEET) - 4


def test_detail_sheet_requires_configuration(source_workbook: Path) -> None:
    with pytest.raises(MappingError, match="No detail sheet"):
        read_detail_mappings(source_workbook, WorkbookLayout(data_sheet="Data"))


def test_layout_rejects_incomplete_metadata_rows() -> None:
    with pytest.raises(ValueError):
        WorkbookLayout(metadata_rows=("DatabaseName", "Guid"))
