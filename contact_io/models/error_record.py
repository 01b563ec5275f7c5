from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

Supports row=-1 as a sentinel for file-level errors (e.g. the import was
aborted before any row was processed).
"""

__all__ = [
    "CONTACT_INSERT_ERROR",
    "ErrorRecord",
    "IMPORT_FATAL",
    "TAG_ASSOCIATION_ERROR",
    "VALIDATION_ERROR",
]

VALIDATION_ERROR = "VALIDATION_ERROR"
CONTACT_INSERT_ERROR = "CONTACT_INSERT_ERROR"
TAG_ASSOCIATION_ERROR = "TAG_ASSOCIATION_ERROR"
IMPORT_FATAL = "IMPORT_FATAL"  # row=-1


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: CSV filename being imported
        row: Line number in the CSV file (header is line 1, skipped ragged
            lines counted). -1 for file-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable message (validation text or driver message)
    """
    timestamp: str
    file: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(file: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
