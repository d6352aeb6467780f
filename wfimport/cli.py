"""Typer based command line entry points for wfimport."""

from __future__ import annotations

import logging
import signal
from pathlib import Path
from typing import Optional

import typer

from wfimport.config import ImportJobConfig, load_import_job
from wfimport.core.errors import ConfigError, MappingError
from wfimport.core.logger import get_logger
from wfimport.services.bps.client import BpsClient
from wfimport.services.bps.config import resolve_config
from wfimport.services.bps.models import BpsAuthError, BpsError
from wfimport.services.importer.classifier import DETAIL_COLUMN_PATTERNS, classify
from wfimport.services.importer.driver import RowImportDriver, build_rows, group_detail_rows
from wfimport.services.importer.models import ImportResult
from wfimport.services.importer.progress import CancellationToken, NullObserver, ProgressObserver
from wfimport.services.importer.report import render_summary
from wfimport_io.mapping import DetailSheet, read_detail_mappings, read_field_mappings
from wfimport_io.schema import WorkbookLayout
from wfimport_persist.stores.base_store import StoreError
from wfimport_persist.stores.ledger_store import StatusLedger
from wfimport_persist.utils.paths import ledger_path_for

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_ROW_ERRORS = 3
EXIT_CANCELLED = 130

app = typer.Typer(help="Import spreadsheet rows into the workflow engine.")


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Set global logging level (e.g. DEBUG/INFO/WARNING).",
    ),
) -> None:
    """Configure global CLI behaviour before executing commands."""

    logger = get_logger()

    level_value = getattr(logging, log_level.upper(), None)
    if not isinstance(level_value, int):
        raise typer.BadParameter(f"Unknown log level: {log_level}")

    logging.getLogger().setLevel(level_value)
    logger.setLevel(level_value)


class ConsoleProgress:
    """Prints one status line per row to stderr."""

    def __init__(self, token: CancellationToken) -> None:
        self._token = token

    def on_progress(
        self,
        processed: int,
        total: int,
        current_row: str,
        success_count: int,
        error_count: int,
        skipped_count: int,
    ) -> None:
        typer.secho(
            f"{processed:>5}/{total:<5} {current_row} ok={success_count} err={error_count} skip={skipped_count}",
            err=True,
        )

    def is_cancelled(self) -> bool:
        return self._token.is_cancelled()


def _install_sigint(token: CancellationToken):
    def _handler(signum, frame) -> None:  # noqa: ARG001 - signal signature
        if token.is_cancelled():
            raise KeyboardInterrupt
        token.cancel()
        typer.secho("Stopping after the current row (Ctrl+C again to abort)...", fg=typer.colors.YELLOW, err=True)

    try:
        return signal.signal(signal.SIGINT, _handler)
    except ValueError:
        # Not in the main thread.
        return None


def _load_job(profile: Optional[str], config: Optional[Path]) -> ImportJobConfig:
    logger = get_logger()
    try:
        return load_import_job(profile, config_path=config)
    except ConfigError as exc:
        logger.error("wfimport.cli config_error: %s", exc)
        typer.secho(f"Unable to load import configuration: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_CONFIG) from exc


@app.command("run")
def run_import(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="Source workbook"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Import job name under 'imports' in profiles.yaml"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to profiles.yaml"),
    ledger: Optional[Path] = typer.Option(None, "--ledger", help="Status ledger path (default: <source>_status.xlsx)"),
    detail: Optional[bool] = typer.Option(None, "--detail/--no-detail", help="Send the detail sheet as an item list"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Display per-row progress"),
) -> None:
    """Import every row of SOURCE that the ledger does not already mark as imported."""

    logger = get_logger()
    job = _load_job(profile, config)
    try:
        bps_config = resolve_config(job.connection, config_path=config)
    except (ConfigError, BpsError) as exc:
        logger.error("wfimport.cli config_error: %s", exc)
        typer.secho(f"Unable to load connection profile: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_CONFIG) from exc

    settings = job.to_settings(detail=detail)
    if settings.detail_enabled and settings.item_list is None:
        typer.secho("Detail import requested but no item_list is configured", fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_CONFIG)

    try:
        sheet = read_field_mappings(source, job.workbook, choice_columns=job.choice_columns)
        detail_sheet: DetailSheet | None = None
        if settings.uses_detail:
            detail_sheet = read_detail_mappings(source, job.workbook, choice_columns=job.choice_columns)
    except MappingError as exc:
        logger.error("wfimport.cli mapping_error source=%s error=%s", source, exc)
        typer.secho(f"Cannot read mappings: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_FAILURE) from exc

    rows = build_rows(sheet.rows, sheet.id_column)
    detail_index = group_detail_rows(detail_sheet.rows, detail_sheet.id_column) if detail_sheet else {}
    ledger_path = ledger or ledger_path_for(source)
    status_ledger = StatusLedger(ledger_path)

    token = CancellationToken()
    observer: ProgressObserver = ConsoleProgress(token) if progress else NullObserver(token)
    previous_handler = _install_sigint(token)
    client = BpsClient(bps_config, logger=logger)
    result: ImportResult | None = None
    try:
        client.authenticate()
        driver = RowImportDriver(
            client,
            status_ledger,
            settings,
            sheet.field_mappings,
            detail_mappings=detail_sheet.column_mappings if detail_sheet else (),
            detail_index=detail_index,
            observer=observer,
            logger=logger,
        )
        result = driver.run(rows)
    except BpsAuthError as exc:
        logger.error("wfimport.cli auth_failed error=%s", exc)
        typer.secho(f"Authentication failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_FAILURE) from exc
    except StoreError as exc:
        logger.error("wfimport.cli ledger_failed path=%s error=%s", ledger_path, exc)
        typer.secho(f"Ledger write failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_FAILURE) from exc
    finally:
        client.close()
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    typer.echo(render_summary(result))
    typer.echo(f"ledger: {ledger_path}")
    if result.cancelled:
        raise typer.Exit(code=EXIT_CANCELLED)
    if result.has_errors:
        raise typer.Exit(code=EXIT_ROW_ERRORS)


@app.command("status")
def ledger_status(
    ledger: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="Status ledger workbook"),
) -> None:
    """Print per-status counts and failed rows recorded in LEDGER."""

    status_ledger = StatusLedger(ledger)
    counts = status_ledger.summary()
    typer.echo(" ".join(f"{name}={count}" for name, count in counts.items()))
    for entry in status_ledger.failed_entries():
        typer.echo(f"  {entry.row_id}: {entry.error_message}")


@app.command("inspect")
def inspect_source(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="Source workbook"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Import job providing layout and choice columns"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to profiles.yaml"),
    detail: bool = typer.Option(False, "--detail/--no-detail", help="Also list the detail sheet columns"),
) -> None:
    """Show the identifier column and the classified type of every mapped column."""

    layout = WorkbookLayout()
    choice_columns: list[str] = []
    if profile or config:
        job = _load_job(profile, config)
        layout = job.workbook
        choice_columns = list(job.choice_columns)

    try:
        sheet = read_field_mappings(source, layout, choice_columns=choice_columns)
        detail_sheet = read_detail_mappings(source, layout, choice_columns=choice_columns) if detail else None
    except MappingError as exc:
        typer.secho(f"Cannot read mappings: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_FAILURE) from exc

    typer.echo(f"id_column: {sheet.id_column if sheet.id_column is not None else '(positional)'}")
    typer.echo(f"rows: {len(sheet.rows)}")
    for mapping in sheet.field_mappings:
        field_type = classify(mapping.column_type_hint, mapping.database_name, mapping.explicit_choice)
        typer.echo(f"  {mapping.display_name} -> {mapping.database_name} [{field_type.wire_type}]")
    if detail_sheet is not None:
        typer.echo(f"detail id_column: {detail_sheet.id_column}")
        for column in detail_sheet.column_mappings:
            field_type = classify(
                column.column_type_hint,
                column.database_name,
                column.explicit_choice,
                patterns=DETAIL_COLUMN_PATTERNS,
            )
            typer.echo(f"  {column.friendly_name or column.source_column} -> {column.database_name} [{field_type.wire_type}]")


__all__ = ["app", "ConsoleProgress", "EXIT_OK", "EXIT_FAILURE", "EXIT_CONFIG", "EXIT_ROW_ERRORS", "EXIT_CANCELLED"]
