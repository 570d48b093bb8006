"""Envelope dataclass and epoch-millisecond helpers.

Every stored value is wrapped in an Envelope before it reaches a backend.
The envelope carries the payload plus the metadata needed to decide
whether the entry is still readable: when it was written, when it
expires, and which format version wrote it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

CURRENT_FORMAT_VERSION = "1.0.0"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_ms(moment: datetime) -> int:
    """Convert an aware datetime to integer milliseconds since the epoch."""
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(value: int) -> datetime:
    """Convert integer milliseconds since the epoch to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=value)


@dataclass(frozen=True)
class Envelope:
    """Wraps a stored payload with creation, expiry and version metadata.

    Envelopes are only built inside ``StorageEngine.set`` and are never
    mutated afterwards. ``expires_at`` of None means the entry never
    expires.
    """

    payload: Any
    created_at: datetime
    expires_at: datetime | None
    format_version: str = CURRENT_FORMAT_VERSION

    @classmethod
    def create(
        cls,
        payload: Any,
        now: datetime,
        ttl: timedelta | None,
        format_version: str = CURRENT_FORMAT_VERSION,
    ) -> Envelope:
        """Build an envelope created at *now* that lives for *ttl*.

        Timestamps are truncated to whole milliseconds so the in-memory
        envelope matches what a decode of its wire form produces.
        """
        created_at = from_epoch_ms(to_epoch_ms(now))
        expires_at = from_epoch_ms(to_epoch_ms(now + ttl)) if ttl is not None else None
        return cls(
            payload=payload,
            created_at=created_at,
            expires_at=expires_at,
            format_version=format_version,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire mapping written by the codec."""
        return {
            "data": self.payload,
            "timestamp": to_epoch_ms(self.created_at),
            "expiresAt": to_epoch_ms(self.expires_at) if self.expires_at is not None else None,
            "version": self.format_version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Envelope:
        """Rebuild an envelope from an already validated wire mapping."""
        expires_at = data.get("expiresAt")
        return cls(
            payload=data["data"],
            created_at=from_epoch_ms(int(data["timestamp"])),
            expires_at=from_epoch_ms(int(expires_at)) if expires_at is not None else None,
            format_version=data["version"],
        )
