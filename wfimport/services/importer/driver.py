"""Resumable row loop: skip imported rows, submit the rest, record every outcome.

Per row the driver resolves the row id, checks for cancellation, consults the
ledger, builds the request body, calls the element sink and writes exactly one
ledger entry. Ids reserved for ledger sentinels are failed without a call.
Cancellation is polled before the ledger check, before building
the payload, between fields while building it and after the API call. Once a
stop is observed the current row is left untouched in the ledger.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Iterable, Mapping, Sequence

from wfimport.core.logger import get_logger
from wfimport.services.bps.client import ElementSink
from wfimport.services.bps.models import BpsAuthError
from wfimport_persist.stores.ledger_store import SENTINEL_IDS, LedgerEntry, LedgerStatus, StatusLedger

from .coercer import is_missing, to_text
from .models import (
    DetailColumnMapping,
    FieldMapping,
    ImportResult,
    ImportSettings,
    Row,
    RowOutcome,
    RowState,
    SourceRow,
)
from .payload import PayloadCancelled, build_detail_rows, build_element_body, build_field_payloads
from .progress import NullObserver, ProgressObserver

LOGGER = get_logger()

DetailIndex = Mapping[str, Sequence[Mapping[str, Any]]]


def resolve_row_id(row: SourceRow, id_column: str | None) -> tuple[str, bool]:
    """Return ``(row_id, explicit)``; blank or absent ids fall back to the 1-based position."""

    if id_column:
        raw = row.values.get(id_column)
        if not is_missing(raw):
            text = to_text(raw).strip()
            if text:
                return text, True
    return str(row.position), False


def build_rows(
    source_rows: Iterable[SourceRow],
    id_column: str | None,
    *,
    logger: logging.Logger | None = None,
) -> list[Row]:
    """Attach row ids to source rows, warning about ids that will not survive reordering."""

    log = logger or LOGGER
    rows: list[Row] = []
    positional = 0
    for source in source_rows:
        row_id, explicit = resolve_row_id(source, id_column)
        if not explicit:
            positional += 1
        rows.append(Row(row_id=row_id, fields=dict(source.values), position=source.position))

    if positional:
        log.warning(
            "importer.rows positional_ids count=%d id_column=%s: these rows are keyed by position"
            " and resume only while the row order stays unchanged",
            positional,
            id_column or "-",
        )
    duplicates = [row_id for row_id, count in Counter(row.row_id for row in rows).items() if count > 1]
    if duplicates:
        log.warning("importer.rows duplicate_ids ids=%s", ",".join(duplicates[:20]))
    reserved = sorted({row.row_id for row in rows if row.row_id in SENTINEL_IDS})
    if reserved:
        log.warning("importer.rows reserved_ids ids=%s: these rows will be rejected", ",".join(reserved))
    return rows


def group_detail_rows(rows: Iterable[SourceRow], id_column: str | None) -> dict[str, list[dict[str, Any]]]:
    """Group child rows by the parent row id stored in *id_column*."""

    grouped: dict[str, list[dict[str, Any]]] = {}
    orphans = 0
    for source in rows:
        raw = source.values.get(id_column) if id_column else None
        if is_missing(raw):
            orphans += 1
            continue
        grouped.setdefault(to_text(raw).strip(), []).append(dict(source.values))
    if orphans:
        LOGGER.warning("importer.detail rows_without_parent count=%d", orphans)
    return grouped


class RowImportDriver:
    """Drive one import run over an ordered row sequence."""

    def __init__(
        self,
        sink: ElementSink,
        ledger: StatusLedger,
        settings: ImportSettings,
        field_mappings: Sequence[FieldMapping],
        *,
        detail_mappings: Sequence[DetailColumnMapping] = (),
        detail_index: DetailIndex | None = None,
        observer: ProgressObserver | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._sink = sink
        self._ledger = ledger
        self._settings = settings
        self._field_mappings = [mapping for mapping in field_mappings if mapping.is_valid]
        self._detail_mappings = [mapping for mapping in detail_mappings if mapping.is_valid]
        self._detail_index: DetailIndex = detail_index or {}
        self._observer: ProgressObserver = observer or NullObserver()
        self._logger = logger or LOGGER

    def run(self, rows: Sequence[Row]) -> ImportResult:
        """Process *rows* in order and return the aggregated result.

        Row failures are recorded and never stop the loop. Ledger write failures
        and authentication failures propagate to the caller.
        """

        result = ImportResult(total=len(rows))
        entries = self._ledger.load()
        self._logger.info(
            "importer.run start rows=%d ledger_entries=%d fields=%d detail=%s",
            len(rows),
            len(entries),
            len(self._field_mappings),
            self._settings.uses_detail,
        )
        self._ledger.write_start()
        try:
            for row in rows:
                if self._cancelled(result, row, "before_skip_check"):
                    break
                if row.row_id in SENTINEL_IDS:
                    self._reject(result, row, f"row id {row.row_id!r} is reserved by the status ledger")
                    continue
                if StatusLedger.is_imported(entries.get(row.row_id)):
                    result.skipped_count += 1
                    self._notify(result, row, RowState.SKIPPED)
                    continue
                if self._cancelled(result, row, "before_payload"):
                    break

                outcome = self._process_row(row)
                if outcome is None:
                    result.cancelled = True
                    break
                if self._cancelled(result, row, "after_call"):
                    break
                self._record(result, row, outcome, entries)
        finally:
            result.finish()
            self._write_end()

        self._logger.info(
            "importer.run done processed=%d/%d success=%d error=%d skipped=%d cancelled=%s elapsed=%.1fs",
            result.processed,
            result.total,
            result.success_count,
            result.error_count,
            result.skipped_count,
            result.cancelled,
            result.elapsed_seconds,
        )
        return result

    # Internal helpers -------------------------------------------------

    def _process_row(self, row: Row) -> RowOutcome | None:
        """Build and submit one row; returns None when cancelled mid-build."""

        try:
            fields = build_field_payloads(
                row.fields,
                self._field_mappings,
                tz=self._settings.source_timezone,
                should_stop=self._observer.is_cancelled,
            )
        except PayloadCancelled:
            self._logger.info("importer.cancel row_id=%s point=building_fields", row.row_id)
            return None

        try:
            detail_rows = None
            if self._settings.uses_detail:
                detail_rows = build_detail_rows(
                    self._detail_index.get(row.row_id, ()),
                    self._detail_mappings,
                    tz=self._settings.source_timezone,
                )
            body = build_element_body(self._settings, fields, detail_rows)
            response = self._sink.create_element(body)
        except BpsAuthError:
            raise
        except Exception as exc:  # noqa: BLE001 - row failures are recorded, not raised
            self._logger.error("importer.row failed row_id=%s error=%s", row.row_id, exc)
            return RowOutcome(row_id=row.row_id, state=RowState.FAILED, message=str(exc))

        self._logger.info(
            "importer.row succeeded row_id=%s fields=%d element_id=%s",
            row.row_id,
            len(fields),
            response.get("id") if isinstance(response, Mapping) else None,
        )
        return RowOutcome(row_id=row.row_id, state=RowState.SUCCEEDED)

    def _record(
        self, result: ImportResult, row: Row, outcome: RowOutcome, entries: dict[str, LedgerEntry]
    ) -> None:
        if outcome.state is RowState.SUCCEEDED:
            entries[row.row_id] = self._ledger.update(row.row_id, LedgerStatus.SUCCESS)
            result.success_count += 1
        else:
            entries[row.row_id] = self._ledger.update(row.row_id, LedgerStatus.ERROR, outcome.message)
            result.error_count += 1
            result.failures.append(outcome)
        self._notify(result, row, outcome.state)

    def _reject(self, result: ImportResult, row: Row, message: str) -> None:
        """Fail a row without submitting it or touching the ledger."""

        self._logger.error("importer.row rejected row_id=%s error=%s", row.row_id, message)
        result.error_count += 1
        result.failures.append(RowOutcome(row_id=row.row_id, state=RowState.FAILED, message=message))
        self._notify(result, row, RowState.FAILED)

    def _cancelled(self, result: ImportResult, row: Row, point: str) -> bool:
        if not self._observer.is_cancelled():
            return False
        result.cancelled = True
        self._logger.info("importer.cancel row_id=%s point=%s", row.row_id, point)
        return True

    def _notify(self, result: ImportResult, row: Row, state: RowState) -> None:
        result.processed += 1
        self._observer.on_progress(
            result.processed,
            result.total,
            f"{row.row_id} {state.value}",
            result.success_count,
            result.error_count,
            result.skipped_count,
        )

    def _write_end(self) -> None:
        try:
            self._ledger.write_end()
        except Exception as exc:  # noqa: BLE001 - closing sentinel is best effort
            self._logger.error("importer.run write_end_failed path=%s error=%s", self._ledger.path, exc)


__all__ = ["RowImportDriver", "build_rows", "group_detail_rows", "resolve_row_id"]
