from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..config.loader import ImportSettings
from ..csvio.normalizer import normalize_rows
from ..csvio.parser import parse_csv_document
from ..db.contacts import (
    DatabaseError,
    fetch_company_map,
    fetch_last_display_id,
    fetch_tag_map,
    insert_contact,
    insert_contact_tags,
    lock_organization,
)
from ..logging.error_log import ErrorLogBuffer
from ..models.contact import ContactImportRow, ContactPayload
from ..models.error_record import (
    CONTACT_INSERT_ERROR,
    IMPORT_FATAL,
    TAG_ASSOCIATION_ERROR,
    VALIDATION_ERROR,
    ErrorRecord,
)
from ..models.import_result import HEADER_ROW_OFFSET, ImportReport, ImportResult
from .display_id import DisplayIdAllocator
from .progress import RowProgress

logger = logging.getLogger(__name__)

"""Contact import orchestration.

Flow: CSV text -> parser -> normalizer -> import_contacts() -> ImportResult.

Transaction layout (cursor given):
    BEGIN
      advisory lock per organization, then company map / tag map / last
      display id are read once
      per row: SAVEPOINT -> insert contact -> insert tags -> RELEASE
               (any row failure: ROLLBACK TO + RELEASE SAVEPOINT, row recorded failed)
    COMMIT

Row failures never abort the batch. Only a missing organization, a failed
lookup pre-pass, or a broken transaction are fatal (ContactImportError).

cursor=None is dry-run mode: rows are validated and identifiers allocated
(from PREFIX-001). Company and tag names are not resolved, nothing is written.
"""

NO_ORGANIZATION = "No organization found"
NAME_REQUIRED = "Name is required"

_SAVEPOINT = "contact_row"


class ContactImportError(Exception):
    """Batch-fatal import failure. No partial ImportResult is returned."""


@dataclass
class _Lookups:
    company_map: dict[str, str]
    tag_map: dict[str, str]
    allocator: DisplayIdAllocator


def _tx(cursor: Any, statement: str) -> None:
    try:
        cursor.execute(statement)
    except Exception as e:
        raise ContactImportError(f"{statement} failed: {e}") from e


def _rollback_quietly(cursor: Any) -> None:
    try:
        cursor.execute("ROLLBACK")
    except Exception:
        logger.debug("ROLLBACK failed", exc_info=True)


def _rollback_row(cursor: Any) -> None:
    # ROLLBACK TO の後も savepoint は残る
    _tx(cursor, f"ROLLBACK TO SAVEPOINT {_SAVEPOINT}")
    _tx(cursor, f"RELEASE SAVEPOINT {_SAVEPOINT}")


def _prefetch(cursor: Any, organization_id: str, settings: ImportSettings) -> _Lookups:
    if cursor is None:
        return _Lookups(
            company_map={},
            tag_map={},
            allocator=DisplayIdAllocator(
                None, prefix=settings.display_id_prefix, width=settings.display_id_width
            ),
        )
    lock_organization(cursor, organization_id)
    last = fetch_last_display_id(cursor, organization_id, settings.display_id_prefix)
    lookups = _Lookups(
        company_map=fetch_company_map(cursor, organization_id),
        tag_map=fetch_tag_map(cursor, organization_id),
        allocator=DisplayIdAllocator(
            last, prefix=settings.display_id_prefix, width=settings.display_id_width
        ),
    )
    logger.debug(
        "org=%s last_display_id=%s companies=%d tags=%d",
        organization_id,
        last,
        len(lookups.company_map),
        len(lookups.tag_map),
    )
    return lookups


def _resolve_company(row: ContactImportRow, company_map: dict[str, str], line_no: int) -> str | None:
    if not row.company:
        return None
    company_id = company_map.get(row.company.strip().lower())
    if company_id is None:
        logger.warning("line %d: company %r not found, contact created without company", line_no, row.company)
    return company_id


def _resolve_tags(
    row: ContactImportRow, tag_map: dict[str, str], separator: str, line_no: int
) -> list[str]:
    tag_ids: list[str] = []
    for name in row.tag_names(separator):
        tag_id = tag_map.get(name)
        if tag_id is None:
            logger.warning("line %d: tag %r not found, ignored", line_no, name)
            continue
        if tag_id not in tag_ids:
            tag_ids.append(tag_id)
    return tag_ids


def _fail(
    result: ImportResult,
    error_log: ErrorLogBuffer | None,
    source: str,
    index: int,
    line_no: int,
    error_type: str,
    message: str,
) -> None:
    err = result.record_failure(index, message)
    logger.debug("row %d (line %d) failed (%s): %s", err.row, line_no, error_type, message)
    if error_log is not None:
        # エラーログにはファイル上の実際の行番号を書く
        error_log.append(ErrorRecord.create(file=source, row=line_no, error_type=error_type, message=message))


def _import_row(
    index: int,
    line_no: int,
    row: ContactImportRow,
    organization_id: str,
    cursor: Any,
    lookups: _Lookups,
    settings: ImportSettings,
    result: ImportResult,
    error_log: ErrorLogBuffer | None,
    source: str,
) -> bool:
    if not row.name:
        _fail(result, error_log, source, index, line_no, VALIDATION_ERROR, NAME_REQUIRED)
        return False

    if cursor is None:
        lookups.allocator.commit()
        result.record_success()
        return True

    payload = ContactPayload.from_row(
        row,
        organization_id=organization_id,
        display_id=lookups.allocator.peek(),
        company_id=_resolve_company(row, lookups.company_map, line_no),
    )
    tag_ids = _resolve_tags(row, lookups.tag_map, settings.tag_separator, line_no)

    _tx(cursor, f"SAVEPOINT {_SAVEPOINT}")
    try:
        contact_id = insert_contact(cursor, payload)
    except DatabaseError as e:
        _rollback_row(cursor)
        _fail(result, error_log, source, index, line_no, CONTACT_INSERT_ERROR, str(e))
        return False

    # タグ紐付け失敗時は連絡先ごと savepoint まで巻き戻す (行単位で原子的)
    try:
        insert_contact_tags(cursor, contact_id, tag_ids)
    except DatabaseError as e:
        _rollback_row(cursor)
        _fail(result, error_log, source, index, line_no, TAG_ASSOCIATION_ERROR, str(e))
        return False

    _tx(cursor, f"RELEASE SAVEPOINT {_SAVEPOINT}")
    lookups.allocator.commit()
    result.record_success()
    return True


def import_contacts(
    rows: Iterable[ContactImportRow],
    organization_id: str | None,
    cursor: Any = None,
    *,
    settings: ImportSettings | None = None,
    on_complete: Callable[[ImportResult], None] | None = None,
    error_log: ErrorLogBuffer | None = None,
    source: str = "<memory>",
    line_numbers: Sequence[int] | None = None,
) -> ImportResult:
    """Create one contact per row, strictly in input order.

    Args:
        rows: Normalized rows
        organization_id: Tenant every statement is scoped to
        cursor: psycopg2 cursor (None = dry-run mode)
        settings: Display id format and tag separator
        on_complete: Called once with the result after a successful commit
            (e.g. to invalidate a contacts cache)
        error_log: Optional buffer receiving one ErrorRecord per failed row
        source: File name recorded in error log entries
        line_numbers: File line of each row, written to error log entries.
            Defaults to index + 2 (no skipped lines)

    Returns:
        ImportResult with total == len(rows) and successful + failed == total

    Raises:
        ContactImportError: missing organization, lookup pre-pass failure,
            or a transaction statement failing
    """
    if not organization_id:
        raise ContactImportError(NO_ORGANIZATION)
    settings = settings or ImportSettings()
    row_list = list(rows)
    result = ImportResult(total=len(row_list))
    if line_numbers is None:
        line_numbers = [i + HEADER_ROW_OFFSET for i in range(len(row_list))]
    elif len(line_numbers) != len(row_list):
        raise ValueError("line_numbers must have one entry per row")

    if cursor is not None:
        _tx(cursor, "BEGIN")

    try:
        try:
            lookups = _prefetch(cursor, organization_id, settings)
        except DatabaseError as e:
            raise ContactImportError(f"failed to load lookups: {e}") from e

        with RowProgress(len(row_list)) as progress:
            for index, row in enumerate(row_list):
                ok = _import_row(
                    index,
                    line_numbers[index],
                    row,
                    organization_id,
                    cursor,
                    lookups,
                    settings,
                    result,
                    error_log,
                    source,
                )
                progress.advance(ok)

        if cursor is not None:
            _tx(cursor, "COMMIT")
    except ContactImportError:
        if cursor is not None:
            _rollback_quietly(cursor)
        raise

    logger.debug(
        "import finished org=%s total=%d successful=%d failed=%d allocated=%s",
        organization_id,
        result.total,
        result.successful,
        result.failed,
        lookups.allocator.allocated[-1] if lookups.allocator.allocated else None,
    )
    if on_complete is not None:
        on_complete(result)
    return result


def read_csv_text(path: Path) -> str:
    try:
        # Excel 由来の BOM 付き UTF-8 を許容
        return path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as e:
        raise ContactImportError(f"file not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ContactImportError(f"cannot read {path}: {e}") from e


def import_csv_file(
    path: Path,
    organization_id: str | None,
    cursor: Any = None,
    *,
    settings: ImportSettings | None = None,
    error_log_dir: Path | None = None,
    on_complete: Callable[[ImportResult], None] | None = None,
) -> ImportReport:
    """Read, parse, normalize and import one CSV file."""
    if not organization_id:
        raise ContactImportError(NO_ORGANIZATION)
    start_time = datetime.now(UTC)
    content = read_csv_text(path)
    doc = parse_csv_document(content)
    rows = normalize_rows(doc.rows)
    logger.info(
        "%s: %d rows parsed, %d lines skipped", path.name, len(rows), doc.skipped_lines
    )

    error_log = ErrorLogBuffer(error_log_dir)
    try:
        result = import_contacts(
            rows,
            organization_id,
            cursor,
            settings=settings,
            on_complete=on_complete,
            error_log=error_log,
            source=path.name,
            line_numbers=doc.line_numbers,
        )
    except ContactImportError as e:
        error_log.append(ErrorRecord.create(file=path.name, row=-1, error_type=IMPORT_FATAL, message=str(e)))
        raise
    finally:
        try:
            written = error_log.flush()
            if written is not None:
                logger.info("row errors written to %s", written)
        except OSError as e:
            logger.warning("failed to write error log: %s", e)

    elapsed = (datetime.now(UTC) - start_time).total_seconds()
    return ImportReport(
        source=path.name,
        result=result,
        skipped_lines=doc.skipped_lines,
        elapsed_seconds=elapsed,
    )
