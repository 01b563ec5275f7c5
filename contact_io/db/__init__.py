"""PostgreSQL access for contacts, companies and tags."""
