from __future__ import annotations

from wfimport.services.importer.models import ImportResult, RowOutcome, RowState
from wfimport.services.importer.report import render_summary, render_summary_line


def _result(**overrides: object) -> ImportResult:
    result = ImportResult(total=3, processed=3, success_count=2, error_count=1, skipped_count=0)
    for key, value in overrides.items():
        setattr(result, key, value)
    result.started_at = 10.0
    result.finished_at = 12.5
    return result


def test_summary_line_format() -> None:
    assert render_summary_line(_result()) == (
        "SUMMARY rows=3/3 success=2 error=1 skipped=0 cancelled=no elapsed_sec=2.50"
    )


def test_summary_lists_failed_rows_on_one_line_each() -> None:
    failure = RowOutcome("A-2", RowState.FAILED, "HTTP 400 Bad Request:\n  field missing")
    text = render_summary(_result(failures=[failure], cancelled=True))
    assert text.splitlines() == [
        "SUMMARY rows=3/3 success=2 error=1 skipped=0 cancelled=yes elapsed_sec=2.50",
        "  A-2: HTTP 400 Bad Request: field missing",
    ]
