"""Assemble the element creation request body for one row."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Sequence

from .classifier import DETAIL_COLUMN_PATTERNS, FORM_FIELD_PATTERNS, FieldType, classify
from .coercer import coerce, is_missing
from .models import (
    ITEM_LIST_MODE,
    DetailCell,
    DetailColumnMapping,
    FieldMapping,
    FieldPayload,
    ImportSettings,
    ItemListSettings,
)


class PayloadCancelled(Exception):
    """Raised by the field builder when cancellation is requested mid-row."""


def build_field_payloads(
    fields: Mapping[str, Any],
    mappings: Sequence[FieldMapping],
    *,
    tz: str | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> list[FieldPayload]:
    """Return one payload per mapping whose source value is present.

    ``should_stop`` is polled before each field; when it returns True the
    build is abandoned with ``PayloadCancelled``.
    """

    payloads: list[FieldPayload] = []
    for mapping in mappings:
        if should_stop is not None and should_stop():
            raise PayloadCancelled(mapping.source_column)
        raw = fields.get(mapping.source_column)
        if is_missing(raw):
            continue
        field_type = classify(
            mapping.column_type_hint,
            mapping.database_name,
            mapping.explicit_choice,
            patterns=FORM_FIELD_PATTERNS,
        )
        coerced = coerce(raw, field_type, tz=tz)
        payloads.append(
            FieldPayload(
                guid=mapping.field_guid,
                wire_type=field_type.wire_type,
                display_value=coerced.display,
                name=mapping.display_name,
                value=coerced.value,
            )
        )
    return payloads


def detail_column_type(mapping: DetailColumnMapping) -> FieldType:
    return classify(
        mapping.column_type_hint,
        mapping.database_name,
        mapping.explicit_choice,
        patterns=DETAIL_COLUMN_PATTERNS,
    )


def build_detail_rows(
    detail_rows: Iterable[Mapping[str, Any]],
    mappings: Sequence[DetailColumnMapping],
    *,
    tz: str | None = None,
) -> list[list[DetailCell]]:
    """Return the cells of each child row, skipping rows without any value."""

    typed = [(mapping, detail_column_type(mapping)) for mapping in mappings]
    rows: list[list[DetailCell]] = []
    for values in detail_rows:
        cells: list[DetailCell] = []
        for mapping, field_type in typed:
            raw = values.get(mapping.source_column)
            if is_missing(raw):
                continue
            coerced = coerce(raw, field_type, tz=tz)
            cells.append(DetailCell(guid=mapping.column_guid, display_value=coerced.display, value=coerced.value))
        if cells:
            rows.append(cells)
    return rows


def build_item_lists(item_list: ItemListSettings, rows: Sequence[Sequence[DetailCell]]) -> list[dict[str, Any]]:
    return [
        {
            "guid": item_list.guid,
            "name": item_list.name,
            "mode": ITEM_LIST_MODE,
            "rows": [{"cells": [cell.to_dict() for cell in cells]} for cells in rows],
        }
    ]


def build_element_body(
    settings: ImportSettings,
    fields: Sequence[FieldPayload],
    detail_rows: Sequence[Sequence[DetailCell]] | None = None,
) -> dict[str, Any]:
    """Compose the JSON body: workflow, formType, formFields and the optional parts."""

    body: dict[str, Any] = {
        "workflow": {"guid": settings.workflow_guid},
        "formType": {"guid": settings.form_type_guid},
        "formFields": [payload.to_dict() for payload in fields],
    }
    if settings.business_entity_guid:
        body["businessEntity"] = {"guid": settings.business_entity_guid}
    if settings.uses_detail and detail_rows is not None and settings.item_list is not None:
        body["itemLists"] = build_item_lists(settings.item_list, detail_rows)
    return body


__all__ = [
    "PayloadCancelled",
    "build_field_payloads",
    "build_detail_rows",
    "build_item_lists",
    "build_element_body",
    "detail_column_type",
]
