"""Resumable row import pipeline."""

from .classifier import FieldType, classify
from .coercer import Coerced, coerce, sanitize_text
from .driver import RowImportDriver, build_rows, group_detail_rows, resolve_row_id
from .models import (
    DetailColumnMapping,
    FieldMapping,
    ImportResult,
    ImportSettings,
    ItemListSettings,
    Row,
    RowOutcome,
    RowState,
    SourceRow,
)
from .progress import CancellationToken, NullObserver, ProgressObserver
from .report import render_summary

__all__ = [
    "FieldType",
    "classify",
    "Coerced",
    "coerce",
    "sanitize_text",
    "RowImportDriver",
    "build_rows",
    "group_detail_rows",
    "resolve_row_id",
    "DetailColumnMapping",
    "FieldMapping",
    "ImportResult",
    "ImportSettings",
    "ItemListSettings",
    "Row",
    "RowOutcome",
    "RowState",
    "SourceRow",
    "CancellationToken",
    "NullObserver",
    "ProgressObserver",
    "render_summary",
]
