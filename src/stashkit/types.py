"""Shared types and enums for stashkit."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from stashkit.envelope import Envelope


class EntryStatus(Enum):
    """Readability of one stored entry at a given moment."""

    ABSENT = "absent"
    LIVE = "live"
    EXPIRED = "expired"
    VERSION_MISMATCH = "version_mismatch"
    CORRUPT = "corrupt"

    @property
    def purgeable(self) -> bool:
        """True if ``cleanup()`` would delete an entry in this state."""
        return self in (EntryStatus.EXPIRED, EntryStatus.VERSION_MISMATCH, EntryStatus.CORRUPT)


@dataclass(frozen=True)
class Inspection:
    """Result of looking at one key without changing the store."""

    key: str
    status: EntryStatus
    envelope: Envelope | None = None
    size_bytes: int = 0
    detail: str = ""


@dataclass
class StorageDiagnostics:
    """Usage report for one engine namespace."""

    total_items: int = 0
    total_size_bytes: int = 0
    expired_keys: list[str] = field(default_factory=list)

    @property
    def total_size_kb(self) -> int:
        return round(self.total_size_bytes / 1024)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_items": self.total_items,
            "total_size_bytes": self.total_size_bytes,
            "total_size_kb": self.total_size_kb,
            "expired_keys": list(self.expired_keys),
        }
