from __future__ import annotations

from collections.abc import Iterable, Mapping

from ..models.contact import ContactImportRow

"""Header synonym mapping: RawRow -> ContactImportRow.

Pure functions. No type coercion and no validation; a row with an empty
name is valid output here and is rejected later by the orchestrator.
"""

__all__ = [
    "FIELD_SYNONYMS",
    "normalize_row",
    "normalize_rows",
]

# Canonical field -> header keys tried in order (first non-empty wins)
FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "name": ("name", "full_name", "contact_name"),
    "email": ("email", "email_address"),
    "phone": ("phone", "phone_number", "telephone"),
    "job_title": ("job_title", "title", "position"),
    "company": ("company", "company_name", "organization"),
    "address": ("address", "mailing_address"),
    "notes": ("notes", "description", "comments"),
    "tags": ("tags", "categories", "labels"),
    "linkedin_url": ("linkedin_url", "linkedin"),
    "twitter_url": ("twitter_url", "twitter"),
    "facebook_url": ("facebook_url", "facebook"),
    "website_url": ("website_url", "website", "url"),
}


def _first_non_empty(row: Mapping[str, str], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = row.get(key)
        if value:
            return value
    return ""


def normalize_row(row: Mapping[str, str]) -> ContactImportRow:
    return ContactImportRow(
        **{field: _first_non_empty(row, keys) for field, keys in FIELD_SYNONYMS.items()}
    )


def normalize_rows(rows: Iterable[Mapping[str, str]]) -> list[ContactImportRow]:
    return [normalize_row(r) for r in rows]
