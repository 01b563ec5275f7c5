"""contact_io: CSV contact import / export for a multi-tenant CRM (PostgreSQL)."""

__version__ = "0.1.0"
