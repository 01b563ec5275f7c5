from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime
from typing import Any

from ..models.contact import Contact

"""CSV rendering for contact export and the import template.

Escaping: a string containing a comma or a double quote is wrapped in
double quotes and its quotes are doubled. Everything else is written as is.
"""

__all__ = [
    "EXPORT_HEADERS",
    "IMPORT_HEADERS",
    "TEMPLATE_SAMPLE_ROW",
    "escape_csv_value",
    "export_filename",
    "generate_import_template",
    "render_contacts_csv",
]

IMPORT_HEADERS: tuple[str, ...] = (
    "Name",
    "Email",
    "Phone",
    "Job Title",
    "Company",
    "Address",
    "Notes",
    "Tags",
    "LinkedIn URL",
    "Twitter URL",
    "Facebook URL",
    "Website URL",
)

EXPORT_HEADERS: tuple[str, ...] = IMPORT_HEADERS + ("Created At",)

TEMPLATE_SAMPLE_ROW: tuple[str, ...] = (
    "John Doe",
    "john@example.com",
    "+1-555-0123",
    "CEO",
    "Example Corp",
    "123 Main St, City, Country",
    "Important client",
    "VIP; Client",
    "https://linkedin.com/in/johndoe",
    "https://twitter.com/johndoe",
    "",
    "https://example.com",
)

TAG_JOINER = "; "


def escape_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        if "," in value or '"' in value:
            return '"' + value.replace('"', '""') + '"'
        return value
    return str(value)


def _join(values: Sequence[Any]) -> str:
    return ",".join(escape_csv_value(v) for v in values)


def _contact_values(contact: Contact) -> list[Any]:
    social = contact.social_profiles or {}
    created = contact.created_at
    if isinstance(created, datetime):
        created = created.isoformat()
    return [
        contact.name,
        contact.email or "",
        contact.phone or "",
        contact.job_title or "",
        contact.company_name or "",
        contact.address or "",
        contact.notes or "",
        TAG_JOINER.join(t for t in contact.tags if t),
        social.get("linkedin_url") or "",
        social.get("twitter_url") or "",
        social.get("facebook_url") or "",
        social.get("website_url") or "",
        created,
    ]


def render_contacts_csv(contacts: Iterable[Contact]) -> str:
    """Render contacts as CSV text (header + one line per contact, '\\n' separated)."""
    lines = [",".join(EXPORT_HEADERS)]
    lines.extend(_join(_contact_values(c)) for c in contacts)
    return "\n".join(lines)


def generate_import_template() -> str:
    """Header plus one illustrative row, ready to be downloaded and filled in."""
    return "\n".join([",".join(IMPORT_HEADERS), _join(TEMPLATE_SAMPLE_ROW)])


def export_filename(today: date) -> str:
    return f"contacts-export-{today.isoformat()}.csv"
