from __future__ import annotations

import logging

from ..models.import_result import ImportReport, ImportResult

"""SUMMARY line and end-of-import notification rendering."""

__all__ = [
    "render_notification",
    "render_summary_line",
]


def _format_number(value: float) -> str:
    # 整数値は小数点なし / 極小値は指数表記を避ける
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(report: ImportReport) -> str:
    """Render the SUMMARY line for one imported file.

    Format:
    SUMMARY total={n} successful={s} failed={f} skipped_lines={k}
    elapsed_sec={e} throughput_rps={t}

    >>> from contact_io.models.import_result import ImportResult, ImportReport
    >>> r = ImportResult(total=3, successful=2, failed=1)
    >>> render_summary_line(ImportReport("c.csv", r, skipped_lines=0, elapsed_seconds=2.0))
    'SUMMARY total=3 successful=2 failed=1 skipped_lines=0 elapsed_sec=2 throughput_rps=1'
    """
    r = report.result
    return (
        f"SUMMARY total={r.total} "
        f"successful={r.successful} "
        f"failed={r.failed} "
        f"skipped_lines={report.skipped_lines} "
        f"elapsed_sec={_format_number(report.elapsed_seconds)} "
        f"throughput_rps={_format_number(report.throughput_rows_per_sec)}"
    )


def render_notification(result: ImportResult, *, dry_run: bool = False) -> tuple[int, str]:
    """Single user-facing message for a finished batch, with its log level.

    In dry-run mode nothing was created, so the message says "Validated"
    instead of "imported".
    """
    if dry_run:
        level = logging.INFO if result.failed == 0 else logging.WARNING
        message = f"Validated {result.successful} contacts"
        if result.failed:
            message += f", {result.failed} failed"
        return level, message + " (dry-run, nothing written)"
    if result.failed == 0:
        return logging.INFO, f"Successfully imported {result.successful} contacts"
    return logging.WARNING, f"Imported {result.successful} contacts, {result.failed} failed"
