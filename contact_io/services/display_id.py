from __future__ import annotations

import re

"""Display identifier allocation (CON-001, CON-002, ...).

The current maximum is read once per batch, under a per-organization
advisory lock held by the orchestrator's transaction, and the following
identifiers are handed out from memory. An identifier is only consumed
after its contact row was inserted.
"""

__all__ = [
    "DEFAULT_PREFIX",
    "DEFAULT_WIDTH",
    "DisplayIdAllocator",
    "next_display_id",
]

DEFAULT_PREFIX = "CON"
DEFAULT_WIDTH = 3


def _pattern(prefix: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(prefix)}-(\d+)$")


def format_display_id(number: int, prefix: str = DEFAULT_PREFIX, width: int = DEFAULT_WIDTH) -> str:
    return f"{prefix}-{number:0{width}d}"


def next_display_id(
    last: str | None, prefix: str = DEFAULT_PREFIX, width: int = DEFAULT_WIDTH
) -> str:
    """Return the identifier following ``last``.

    Falls back to ``PREFIX-001`` when there is no previous identifier or it
    does not look like ``PREFIX-<digits>``.

    >>> next_display_id("CON-007")
    'CON-008'
    >>> next_display_id(None)
    'CON-001'
    """
    if not last:
        return format_display_id(1, prefix, width)
    m = _pattern(prefix).match(last.strip())
    if not m:
        return format_display_id(1, prefix, width)
    return format_display_id(int(m.group(1)) + 1, prefix, width)


class DisplayIdAllocator:
    """In-memory identifier sequence seeded from the tenant's current maximum."""

    def __init__(
        self, last: str | None = None, *, prefix: str = DEFAULT_PREFIX, width: int = DEFAULT_WIDTH
    ) -> None:
        self.prefix = prefix
        self.width = width
        self._next = next_display_id(last, prefix, width)
        self.allocated: list[str] = []

    def peek(self) -> str:
        """Identifier the next successful insert will use."""
        return self._next

    def commit(self) -> str:
        """Consume the current identifier and advance."""
        used = self._next
        self.allocated.append(used)
        self._next = next_display_id(used, self.prefix, self.width)
        return used
