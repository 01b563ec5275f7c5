from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

"""Contact domain models.

ContactImportRow is the canonical shape produced by the row normalizer and
consumed by the import orchestrator. It is never persisted.

ContactPayload is what the orchestrator hands to the data-access layer for a
single insert; Contact is what the export side reads back.
"""

__all__ = [
    "SOCIAL_PROFILE_FIELDS",
    "Contact",
    "ContactImportRow",
    "ContactPayload",
]

SOCIAL_PROFILE_FIELDS = ("linkedin_url", "twitter_url", "facebook_url", "website_url")


@dataclass(frozen=True)
class ContactImportRow:
    """One CSV row mapped onto the canonical contact columns.

    All fields are strings and may be empty. Validation (e.g. a missing
    name) happens in the orchestrator, not here.
    """
    name: str = ""
    email: str = ""
    phone: str = ""
    job_title: str = ""
    company: str = ""
    address: str = ""
    notes: str = ""
    tags: str = ""  # ";" 区切りのタグ名
    linkedin_url: str = ""
    twitter_url: str = ""
    facebook_url: str = ""
    website_url: str = ""

    def social_profiles(self) -> dict[str, str]:
        """Collate the non-empty social profile URLs."""
        return {f: getattr(self, f) for f in SOCIAL_PROFILE_FIELDS if getattr(self, f)}

    def tag_names(self, separator: str = ";") -> list[str]:
        """Split the tags cell into lowercased names (order kept, duplicates dropped)."""
        if not self.tags:
            return []
        names: list[str] = []
        for part in self.tags.split(separator):
            name = part.strip().lower()
            if name and name not in names:
                names.append(name)
        return names


@dataclass(frozen=True)
class ContactPayload:
    """Creation payload for a single contacts row."""
    organization_id: str
    display_id: str
    name: str
    email: str | None = None
    phone: str | None = None
    job_title: str | None = None
    company_id: str | None = None
    address: str | None = None
    notes: str | None = None
    social_profiles: dict[str, str] = field(default_factory=dict)

    @staticmethod
    def from_row(
        row: ContactImportRow,
        organization_id: str,
        display_id: str,
        company_id: str | None = None,
    ) -> ContactPayload:
        # 空文字は NULL として保存
        return ContactPayload(
            organization_id=organization_id,
            display_id=display_id,
            name=row.name,
            email=row.email or None,
            phone=row.phone or None,
            job_title=row.job_title or None,
            company_id=company_id,
            address=row.address or None,
            notes=row.notes or None,
            social_profiles=row.social_profiles(),
        )


@dataclass(frozen=True)
class Contact:
    """A stored contact as read back for export."""
    id: str
    display_id: str
    name: str
    email: str | None = None
    phone: str | None = None
    job_title: str | None = None
    company_name: str | None = None
    address: str | None = None
    notes: str | None = None
    tags: list[str] = field(default_factory=list)
    social_profiles: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | str | None = None
