"""CSV parsing, header normalization and rendering for contacts."""

from .normalizer import FIELD_SYNONYMS, normalize_row, normalize_rows
from .parser import CsvDocument, RawRow, parse_csv, parse_csv_document, split_csv_line
from .writer import (
    EXPORT_HEADERS,
    IMPORT_HEADERS,
    escape_csv_value,
    export_filename,
    generate_import_template,
    render_contacts_csv,
)

__all__ = [
    "CsvDocument",
    "RawRow",
    "parse_csv",
    "parse_csv_document",
    "split_csv_line",
    "FIELD_SYNONYMS",
    "normalize_row",
    "normalize_rows",
    "EXPORT_HEADERS",
    "IMPORT_HEADERS",
    "escape_csv_value",
    "export_filename",
    "generate_import_template",
    "render_contacts_csv",
]
