"""Exception types for stashkit.

Only configuration problems escape the engine as exceptions. Data-level
failures (corrupt entries, expired entries, failed writes) are raised by
the codec and backends and absorbed by the engine.
"""

from __future__ import annotations


class StashKitError(Exception):
    """Base exception for all stashkit failures."""


class StashKitConfigError(StashKitError):
    """Raised for an invalid engine configuration or storage profile."""


class DecodeError(StashKitError):
    """Raised when a stored string cannot be turned back into an envelope."""


class EncodeError(StashKitError):
    """Raised when a payload cannot be serialized into an envelope string."""


class BackendWriteError(StashKitError):
    """Raised by a backend that could not persist a value."""


class QuotaExceededError(BackendWriteError):
    """Raised by a backend whose size quota would be exceeded by a write."""

    def __init__(self, key: str, needed: int, quota: int) -> None:
        super().__init__(f"Writing '{key}' needs {needed} bytes, quota is {quota}")
        self.key = key
        self.needed = needed
        self.quota = quota


class BackendReadError(StashKitError):
    """Raised by a backend whose underlying storage could not be read."""
