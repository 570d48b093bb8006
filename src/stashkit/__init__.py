"""stashkit — expiring, versioned key-value storage for session, preference and cache data."""

from __future__ import annotations

from stashkit.audit import CollectingSink, EventSink, FileSink, PurgeEvent, StdoutSink
from stashkit.codec import Base64Obfuscator, EnvelopeCodec, Transform
from stashkit.engine import DEFAULT_PREFIX, DEFAULT_TTL, StorageEngine
from stashkit.envelope import CURRENT_FORMAT_VERSION, Envelope
from stashkit.errors import (
    BackendReadError,
    BackendWriteError,
    DecodeError,
    EncodeError,
    QuotaExceededError,
    StashKitConfigError,
    StashKitError,
)
from stashkit.policy import classify, is_expired
from stashkit.storage import JsonFileBackend, MemoryBackend, StorageBackend
from stashkit.types import EntryStatus, Inspection, StorageDiagnostics

# after the core imports: namespaces builds on config, which needs them
from stashkit.namespaces import AuthStore, PreferenceStore, SessionStore, Stash

__version__ = "0.1.0"

__all__ = [
    "CURRENT_FORMAT_VERSION",
    "DEFAULT_PREFIX",
    "DEFAULT_TTL",
    "AuthStore",
    "BackendReadError",
    "BackendWriteError",
    "Base64Obfuscator",
    "CollectingSink",
    "DecodeError",
    "EncodeError",
    "EntryStatus",
    "Envelope",
    "EnvelopeCodec",
    "EventSink",
    "FileSink",
    "Inspection",
    "JsonFileBackend",
    "MemoryBackend",
    "PreferenceStore",
    "PurgeEvent",
    "QuotaExceededError",
    "SessionStore",
    "Stash",
    "StashKitConfigError",
    "StashKitError",
    "StdoutSink",
    "StorageBackend",
    "StorageDiagnostics",
    "StorageEngine",
    "Transform",
    "classify",
    "is_expired",
]
