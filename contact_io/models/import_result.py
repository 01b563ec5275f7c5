from __future__ import annotations

from dataclasses import dataclass, field

"""Import result models.

ImportResult is created once per import call and updated row by row. The
caller renders it (summary line / notification) and discards it.
"""

__all__ = [
    "HEADER_ROW_OFFSET",
    "ImportReport",
    "ImportResult",
    "RowError",
]

# 0-based index -> 1-based line number, plus the header line
HEADER_ROW_OFFSET = 2


@dataclass(frozen=True)
class RowError:
    """A failure attributed to one input row.

    ``row`` is the parsed-row index + 2 (header counted as row 1). It is not
    the file line once ragged lines were skipped; the JSON Lines error log
    carries the file line.
    """
    row: int
    error: str


@dataclass
class ImportResult:
    """Aggregated outcome of one import invocation.

    Invariants once every row has been processed:
    - successful + failed == total
    - len(errors) == failed, ordered by row
    """
    total: int
    successful: int = 0
    failed: int = 0
    errors: list[RowError] = field(default_factory=list)

    def record_success(self) -> None:
        self.successful += 1

    def record_failure(self, index: int, message: str) -> RowError:
        """Record a failure for the row at 0-based ``index``."""
        err = RowError(row=index + HEADER_ROW_OFFSET, error=message)
        self.failed += 1
        self.errors.append(err)
        return err

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    @property
    def processed(self) -> int:
        return self.successful + self.failed


@dataclass(frozen=True)
class ImportReport:
    """File-level wrapper used by the CLI for the SUMMARY line."""
    source: str
    result: ImportResult
    skipped_lines: int
    elapsed_seconds: float

    @property
    def throughput_rows_per_sec(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.result.successful / self.elapsed_seconds
