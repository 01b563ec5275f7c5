from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

"""Quote-aware CSV parser for contact imports.

Rules:
- 1行目をヘッダ行として扱い、2行目以降をデータ行。
- Header tokens are trimmed, lowercased, whitespace runs collapsed to "_".
- Commas separate fields only outside double quotes. Quotes are not part of
  the value; inside a quoted field "" is a literal quote.
- A data line whose field count differs from the header is skipped, not
  reported as a row error.

The whole input is held in memory and read in a single forward pass. Quoted
fields spanning several lines are not supported.
"""

__all__ = [
    "CsvDocument",
    "RawRow",
    "normalize_header",
    "parse_csv",
    "parse_csv_document",
    "split_csv_line",
]

logger = logging.getLogger(__name__)

RawRow = dict[str, str]

_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass
class CsvDocument:
    headers: list[str]
    rows: list[RawRow] = field(default_factory=list)
    skipped_lines: int = 0
    # rows[i] のファイル上の行番号 (1 始まり, ヘッダ = 1)
    line_numbers: list[int] = field(default_factory=list)


def normalize_header(token: str) -> str:
    """'LinkedIn URL' -> 'linkedin_url'."""
    return _WHITESPACE_RUN.sub("_", token.strip().lower())


def split_csv_line(line: str) -> list[str]:
    """Split one line on commas that are outside double quotes."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                # escaped quote inside a quoted field
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current))
    return fields


def parse_csv_document(content: str) -> CsvDocument:
    """Parse CSV text into header-keyed rows, keeping skip bookkeeping."""
    lines = [ln.rstrip("\r") for ln in content.strip().split("\n")]
    headers = [normalize_header(h) for h in split_csv_line(lines[0])] if lines[0] else []
    doc = CsvDocument(headers=headers)
    if len(lines) < 2:
        return doc

    for line_no, line in enumerate(lines[1:], start=2):
        values = split_csv_line(line)
        if len(values) != len(headers):
            doc.skipped_lines += 1
            logger.warning(
                "line %d skipped: expected %d fields, got %d", line_no, len(headers), len(values)
            )
            continue
        doc.rows.append({h: v.strip() for h, v in zip(headers, values, strict=True)})
        doc.line_numbers.append(line_no)

    return doc


def parse_csv(content: str) -> list[RawRow]:
    """Parse CSV text into a list of header-keyed rows.

    Returns an empty list when there is no header or no data line.
    """
    return parse_csv_document(content).rows
