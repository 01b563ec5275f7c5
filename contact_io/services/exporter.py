from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from ..csvio.writer import export_filename, render_contacts_csv
from ..db.contacts import DatabaseError, fetch_contacts

"""Contact export: read the organization's contacts and write a CSV file."""

logger = logging.getLogger(__name__)


class ContactExportError(Exception):
    pass


@dataclass(frozen=True)
class ExportResult:
    path: Path
    exported: int


def export_contacts(
    cursor: Any,
    organization_id: str | None,
    directory: Path,
    today: date | None = None,
) -> ExportResult:
    """Write ``contacts-export-YYYY-MM-DD.csv`` into ``directory``.

    Raises:
        ContactExportError: missing organization, no database cursor, or a
            query/file failure
    """
    if not organization_id:
        raise ContactExportError("No organization found")
    if cursor is None:
        raise ContactExportError("export requires a database connection")

    try:
        contacts = fetch_contacts(cursor, organization_id)
    except DatabaseError as e:
        raise ContactExportError(f"failed to load contacts: {e}") from e

    content = render_contacts_csv(contacts)
    path = directory / export_filename(today or date.today())
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_text(content + "\n", encoding="utf-8")
    except OSError as e:
        raise ContactExportError(f"cannot write {path}: {e}") from e

    logger.info("exported %d contacts to %s", len(contacts), path)
    return ExportResult(path=path, exported=len(contacts))
