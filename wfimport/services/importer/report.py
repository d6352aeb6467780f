"""End-of-run summary rendering."""

from __future__ import annotations

from .models import ImportResult


def _format_seconds(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return f"{value:.2f}"


def render_summary_line(result: ImportResult) -> str:
    """Render the single ``SUMMARY`` line.

    Format::

        SUMMARY rows={processed}/{total} success={n} error={n} skipped={n} cancelled={yes|no} elapsed_sec={s}
    """

    return (
        f"SUMMARY rows={result.processed}/{result.total} "
        f"success={result.success_count} "
        f"error={result.error_count} "
        f"skipped={result.skipped_count} "
        f"cancelled={'yes' if result.cancelled else 'no'} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def render_summary(result: ImportResult) -> str:
    """Summary line followed by one ``row_id: message`` line per failed row."""

    lines = [render_summary_line(result)]
    for failure in result.failures:
        message = " ".join(failure.message.split())
        lines.append(f"  {failure.row_id}: {message}")
    return "\n".join(lines)


__all__ = ["render_summary", "render_summary_line"]
