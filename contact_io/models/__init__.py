"""Domain models for the contact CSV import/export tool."""

from .contact import SOCIAL_PROFILE_FIELDS, Contact, ContactImportRow, ContactPayload
from .error_record import ErrorRecord
from .import_result import HEADER_ROW_OFFSET, ImportReport, ImportResult, RowError

__all__ = [
    # Contact models
    "SOCIAL_PROFILE_FIELDS",
    "Contact",
    "ContactImportRow",
    "ContactPayload",
    # Result models
    "HEADER_ROW_OFFSET",
    "ImportReport",
    "ImportResult",
    "RowError",
    "ErrorRecord",
]
