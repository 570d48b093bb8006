"""Expiration policy: liveness of an envelope at a point in time.

Both functions are pure. Expiry is never stored; it is computed each time
an envelope is read, enumerated or cleaned up.
"""

from __future__ import annotations

from datetime import datetime

from stashkit.envelope import Envelope
from stashkit.types import EntryStatus


def is_expired(envelope: Envelope, now: datetime) -> bool:
    """Return True once *now* is strictly past the envelope's expiry.

    An envelope without ``expires_at`` never expires. Because ``expires_at``
    is never earlier than ``created_at``, no envelope is expired relative
    to a time before its creation.
    """
    if envelope.expires_at is None:
        return False
    if now < envelope.created_at:
        return False
    return now > envelope.expires_at


def classify(envelope: Envelope, now: datetime, format_version: str) -> EntryStatus:
    """Classify a decoded envelope. Expiry is checked before the version."""
    if is_expired(envelope, now):
        return EntryStatus.EXPIRED
    if envelope.format_version != format_version:
        return EntryStatus.VERSION_MISMATCH
    return EntryStatus.LIVE
