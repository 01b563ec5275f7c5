from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

import psycopg2
from psycopg2.extras import Json, execute_values

from ..models.contact import Contact, ContactPayload

"""Data access for contacts, companies and tags (psycopg2).

Every function takes the organization id explicitly; nothing here reads an
ambient tenant. Transaction boundaries (BEGIN / SAVEPOINT / COMMIT) belong
to the orchestrator, these functions only issue statements.

Tables:
- contacts (id, organization_id, display_id, name, email, phone, job_title,
  company_id, address, notes, social_profiles jsonb, created_at)
- crm_clients (id, organization_id, name)
- tags (id, organization_id, name)
- contact_tags (contact_id, tag_id)
"""

__all__ = [
    "DatabaseError",
    "fetch_company_map",
    "fetch_contacts",
    "fetch_last_display_id",
    "fetch_tag_map",
    "insert_contact",
    "insert_contact_tags",
    "lock_organization",
]


class DatabaseError(Exception):
    """Wraps driver errors; str() is the driver message."""


def _execute(cursor: Any, sql: str, params: Sequence[Any]) -> None:
    try:
        cursor.execute(sql, params)
    except psycopg2.Error as e:
        raise DatabaseError(str(e).strip()) from e


def lock_organization(cursor: Any, organization_id: str) -> None:
    """Serialize imports per organization until the current transaction ends."""
    _execute(cursor, "SELECT pg_advisory_xact_lock(hashtext(%s))", (f"contacts:{organization_id}",))


def fetch_last_display_id(cursor: Any, organization_id: str, prefix: str = "CON") -> str | None:
    # 文字列順だと CON-999 > CON-1000 になるため長さを先に比較
    # PREFIX-<数字> 以外 (CON-LEGACY01 など) は候補から外す
    _execute(
        cursor,
        "SELECT display_id FROM contacts"
        " WHERE organization_id = %s AND display_id ~ %s"
        " ORDER BY length(display_id) DESC, display_id DESC LIMIT 1",
        (organization_id, f"^{re.escape(prefix)}-[0-9]+$"),
    )
    row = cursor.fetchone()
    return row[0] if row else None


def _name_map(cursor: Any, table: str, organization_id: str) -> dict[str, str]:
    _execute(cursor, f"SELECT id, name FROM {table} WHERE organization_id = %s", (organization_id,))
    result: dict[str, str] = {}
    for ident, name in cursor.fetchall():
        if name:
            result.setdefault(str(name).strip().lower(), str(ident))
    return result


def fetch_company_map(cursor: Any, organization_id: str) -> dict[str, str]:
    """Lowercased company name -> company id."""
    return _name_map(cursor, "crm_clients", organization_id)


def fetch_tag_map(cursor: Any, organization_id: str) -> dict[str, str]:
    """Lowercased tag name -> tag id."""
    return _name_map(cursor, "tags", organization_id)


def insert_contact(cursor: Any, payload: ContactPayload) -> str:
    """Insert one contact and return its generated id."""
    _execute(
        cursor,
        "INSERT INTO contacts"
        " (organization_id, display_id, name, email, phone, job_title,"
        " company_id, address, notes, social_profiles)"
        " VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s) RETURNING id",
        (
            payload.organization_id,
            payload.display_id,
            payload.name,
            payload.email,
            payload.phone,
            payload.job_title,
            payload.company_id,
            payload.address,
            payload.notes,
            Json(payload.social_profiles),
        ),
    )
    row = cursor.fetchone()
    if not row:
        raise DatabaseError("insert returned no id")
    return str(row[0])


def insert_contact_tags(cursor: Any, contact_id: str, tag_ids: Sequence[str]) -> int:
    """Associate tags with a contact in a single batched INSERT."""
    if not tag_ids:
        return 0
    try:
        execute_values(
            cursor,
            "INSERT INTO contact_tags (contact_id, tag_id) VALUES %s",
            [(contact_id, t) for t in tag_ids],
        )
    except psycopg2.Error as e:
        raise DatabaseError(str(e).strip()) from e
    return len(tag_ids)


_EXPORT_SQL = """
SELECT c.id, c.display_id, c.name, c.email, c.phone, c.job_title,
       cl.name AS company_name, c.address, c.notes, c.social_profiles, c.created_at,
       COALESCE(
           array_agg(t.name ORDER BY t.name) FILTER (WHERE t.name IS NOT NULL),
           '{}'
       ) AS tag_names
FROM contacts c
LEFT JOIN crm_clients cl ON cl.id = c.company_id
LEFT JOIN contact_tags ct ON ct.contact_id = c.id
LEFT JOIN tags t ON t.id = ct.tag_id
WHERE c.organization_id = %s
GROUP BY c.id, cl.name
ORDER BY c.name ASC
"""


def fetch_contacts(cursor: Any, organization_id: str) -> list[Contact]:
    """Contacts with company name and tag names, ordered by name."""
    _execute(cursor, _EXPORT_SQL, (organization_id,))
    contacts: list[Contact] = []
    for r in cursor.fetchall():
        contacts.append(
            Contact(
                id=str(r[0]),
                display_id=r[1],
                name=r[2],
                email=r[3],
                phone=r[4],
                job_title=r[5],
                company_name=r[6],
                address=r[7],
                notes=r[8],
                social_profiles=r[9] or {},
                created_at=r[10],
                tags=list(r[11] or []),
            )
        )
    return contacts
