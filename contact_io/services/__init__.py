"""Import / export orchestration services."""
