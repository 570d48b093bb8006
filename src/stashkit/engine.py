"""StorageEngine — namespaced, expiring, versioned key-value storage.

The engine is the only place envelopes are created, validated and
destroyed. It owns one key prefix inside a shared backing store and
never reads, writes or deletes a key outside it.

Reads are self-healing: when ``get`` (or ``has``) finds an entry that is
expired, written by another format version, or undecodable, it deletes
the entry and reports a miss. ``inspect`` is the side-effect free
variant for callers that want to know why a key is unreadable.

The engine does no locking. Another writer sharing the backing store can
interleave with the read-decode-purge sequence of ``get``, and the last
write wins. There is deliberately no read-modify-write operation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from stashkit.audit import EventSink, PurgeEvent
from stashkit.codec import EnvelopeCodec
from stashkit.envelope import CURRENT_FORMAT_VERSION, Envelope
from stashkit.errors import (
    BackendReadError,
    BackendWriteError,
    DecodeError,
    EncodeError,
    StashKitConfigError,
)
from stashkit.policy import classify
from stashkit.storage import StorageBackend, entry_size
from stashkit.telemetry import start_storage_span
from stashkit.types import EntryStatus, Inspection, StorageDiagnostics

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "radix_dashboard_"
DEFAULT_TTL = timedelta(days=7)

MAX_TTL = timedelta(days=365 * 1000)

TTL = timedelta | float | int


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_ttl(value: TTL) -> timedelta:
    """Normalize a TTL given as a timedelta or as seconds.

    Raises:
        ValueError: If the TTL is not positive, not finite, or above MAX_TTL.
        TypeError: If the TTL is not a timedelta or a number.
    """
    if isinstance(value, bool) or not isinstance(value, (timedelta, int, float)):
        raise TypeError(f"TTL must be a timedelta or a number of seconds, got {type(value).__name__}")
    if isinstance(value, timedelta):
        ttl = value
    else:
        try:
            ttl = timedelta(seconds=value)
        except OverflowError as e:
            raise ValueError(f"TTL of {value} seconds is out of range") from e
    if ttl <= timedelta(0):
        raise ValueError(f"TTL must be positive, got {ttl}")
    if ttl > MAX_TTL:
        raise ValueError(f"TTL must be at most {MAX_TTL.days} days, got {ttl}")
    return ttl


class StorageEngine:
    """Expiring, versioned key-value storage under one key prefix.

    Construct one engine at application start and hand it to the code that
    needs it; there is no module-level instance.

    Args:
        backend: The string-keyed store entries are written to.
        prefix: Prepended to every logical key. Must be non-empty.
        default_ttl: Lifetime of entries written without an explicit TTL.
            None makes such entries never expire.
        format_version: Envelopes written by any other version are purged
            when read.
        codec: Envelope codec; defaults to JSON with base64 obfuscation.
        obfuscated_keys: Logical keys stored obfuscated. Used whenever an
            ``obfuscate``/``obfuscated`` flag is left as None, including by
            ``cleanup`` and ``diagnostics``, which never guess.
        sinks: Receive a PurgeEvent for every self-healing delete.
        clock: Returns the current aware datetime.

    Raises:
        StashKitConfigError: If the prefix, TTL or version is unusable.
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        prefix: str = DEFAULT_PREFIX,
        default_ttl: TTL | None = DEFAULT_TTL,
        format_version: str = CURRENT_FORMAT_VERSION,
        codec: EnvelopeCodec | None = None,
        obfuscated_keys: Iterable[str] = (),
        sinks: Iterable[EventSink] = (),
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not isinstance(prefix, str) or not prefix:
            raise StashKitConfigError("Engine prefix must be a non-empty string")
        if not isinstance(format_version, str) or not format_version:
            raise StashKitConfigError("Engine format_version must be a non-empty string")
        try:
            self._default_ttl = as_ttl(default_ttl) if default_ttl is not None else None
        except (TypeError, ValueError) as e:
            raise StashKitConfigError(f"Invalid default_ttl: {e}") from e

        self._backend = backend
        self._prefix = prefix
        self._format_version = format_version
        self._codec = codec or EnvelopeCodec()
        self._obfuscated_keys = frozenset(obfuscated_keys)
        self._sinks = list(sinks)
        self._clock = clock or utc_now

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def format_version(self) -> str:
        return self._format_version

    @property
    def default_ttl(self) -> timedelta | None:
        return self._default_ttl

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    @property
    def obfuscated_keys(self) -> frozenset[str]:
        return self._obfuscated_keys

    @property
    def sinks(self) -> tuple[EventSink, ...]:
        return tuple(self._sinks)

    def namespaced(self, key: str) -> str:
        """Return the backend key a logical key is stored under."""
        return f"{self._prefix}{key}"

    def _logical(self, full_key: str) -> str:
        return full_key[len(self._prefix):]

    def _is_obfuscated(self, key: str, flag: bool | None) -> bool:
        if flag is None:
            return key in self._obfuscated_keys
        return flag

    def _namespace_keys(self) -> list[str]:
        # backends may ignore the prefix argument
        return [k for k in self._backend.list_keys(self._prefix) if k.startswith(self._prefix)]

    # ------------------------------------------------------------------
    # Writes

    def set(self, key: str, value: Any, *, ttl: TTL | None = None, obfuscate: bool | None = None) -> bool:
        """Store *value* under *key*.

        Returns:
            True if the entry was written. False if the payload could not
            be serialized or the backend refused the write; any previous
            value for the key is left as it was.

        Raises:
            ValueError: If *ttl* is not positive or is longer than MAX_TTL.
        """
        lifetime = as_ttl(ttl) if ttl is not None else self._default_ttl
        use_obfuscation = self._is_obfuscated(key, obfuscate)

        with start_storage_span("set", {"stashkit.key": key, "stashkit.obfuscated": use_obfuscation}) as span:
            try:
                envelope = Envelope.create(value, self._clock(), lifetime, self._format_version)
            except OverflowError as e:
                logger.error("Failed to store %s: expiry out of range: %s", key, e)
                span.set_attribute("stashkit.stored", False)
                return False
            try:
                raw = self._codec.encode(envelope, obfuscate=use_obfuscation)
            except EncodeError as e:
                logger.error("Failed to store %s: %s", key, e)
                span.set_attribute("stashkit.stored", False)
                return False

            try:
                self._backend.set(self.namespaced(key), raw)
            except BackendWriteError as e:
                logger.error("Failed to store %s: %s", key, e)
                span.set_attribute("stashkit.stored", False)
                return False

            span.set_attribute("stashkit.stored", True)
            return True

    def remove(self, key: str) -> None:
        """Delete *key*. Removing a missing key is a no-op."""
        try:
            self._backend.delete(self.namespaced(key))
        except (BackendReadError, BackendWriteError) as e:
            logger.error("Failed to remove %s: %s", key, e)

    def clear(self) -> int:
        """Delete every entry under this engine's prefix.

        Returns:
            The number of backend keys removed.
        """
        with start_storage_span("clear", {"stashkit.prefix": self._prefix}) as span:
            removed = 0
            try:
                for full_key in self._namespace_keys():
                    self._backend.delete(full_key)
                    removed += 1
            except (BackendReadError, BackendWriteError) as e:
                logger.error("Clearing %s* stopped after %d entries: %s", self._prefix, removed, e)
            span.set_attribute("stashkit.removed", removed)
            logger.info("Cleared %d entries under %s", removed, self._prefix)
            return removed

    # ------------------------------------------------------------------
    # Reads

    def _inspect_raw(self, key: str, raw: str | None, obfuscated: bool) -> Inspection:
        if raw is None:
            return Inspection(key=key, status=EntryStatus.ABSENT)

        size = entry_size(self.namespaced(key), raw)
        try:
            envelope = self._codec.decode(raw, obfuscated=obfuscated)
        except DecodeError as e:
            return Inspection(key=key, status=EntryStatus.CORRUPT, size_bytes=size, detail=str(e))

        status = classify(envelope, self._clock(), self._format_version)
        detail = ""
        if status is EntryStatus.VERSION_MISMATCH:
            detail = f"stored version {envelope.format_version!r}, engine version {self._format_version!r}"
        return Inspection(key=key, status=status, envelope=envelope, size_bytes=size, detail=detail)

    def inspect(self, key: str, *, obfuscated: bool | None = None) -> Inspection:
        """Report the state of *key* without modifying the store."""
        use_obfuscation = self._is_obfuscated(key, obfuscated)
        try:
            raw = self._backend.get(self.namespaced(key))
        except BackendReadError as e:
            return Inspection(key=key, status=EntryStatus.CORRUPT, detail=str(e))
        return self._inspect_raw(key, raw, use_obfuscation)

    def get(self, key: str, *, obfuscated: bool | None = None, default: Any = None) -> Any:
        """Return the payload stored under *key*, or *default*.

        The caller must read a key with the same obfuscation it was written
        with. An expired, version-mismatched or undecodable entry is
        deleted and reported as a miss; ``inspect`` and ``diagnostics``
        are the only ways to tell those cases from a key never set.
        """
        with start_storage_span("get", {"stashkit.key": key}) as span:
            inspection = self.inspect(key, obfuscated=obfuscated)
            span.set_attribute("stashkit.status", inspection.status.value)

            if inspection.status is EntryStatus.LIVE and inspection.envelope is not None:
                return inspection.envelope.payload
            if inspection.status.purgeable:
                if inspection.status is EntryStatus.VERSION_MISMATCH:
                    logger.warning("Storage version mismatch for key %s. Removing item.", key)
                elif inspection.status is EntryStatus.CORRUPT:
                    logger.warning("Failed to retrieve %s: %s", key, inspection.detail)
                self._purge(key, inspection, source="read")
            return default

    def has(self, key: str, *, obfuscated: bool | None = None) -> bool:
        """True if ``get`` would return a value. Shares its purge side effects."""
        return self.get(key, obfuscated=obfuscated) is not None

    def keys(self) -> list[str]:
        """Logical keys currently present under the prefix, readable or not."""
        return [self._logical(k) for k in self._namespace_keys()]

    # ------------------------------------------------------------------
    # Diagnostics and cleanup

    def _purge(self, key: str, inspection: Inspection, source: str) -> bool:
        try:
            self._backend.delete(self.namespaced(key))
        except (BackendReadError, BackendWriteError) as e:
            logger.warning("Could not purge %s: %s", key, e)
            return False
        logger.debug("Purged %s (%s, %s)", key, inspection.status.value, source)
        for sink in self._sinks:
            sink.emit(
                PurgeEvent(
                    key=key,
                    reason=inspection.status,
                    source=source,
                    prefix=self._prefix,
                    detail=inspection.detail,
                )
            )
        return True

    def _inspect_namespace(self) -> list[Inspection]:
        inspections: list[Inspection] = []
        for full_key in self._namespace_keys():
            key = self._logical(full_key)
            inspections.append(self.inspect(key))
        return inspections

    def diagnostics(self) -> StorageDiagnostics:
        """Report usage under the prefix without changing anything.

        ``expired_keys`` holds the logical keys ``cleanup()`` would delete:
        expired, version-mismatched or undecodable entries.
        """
        with start_storage_span("diagnostics", {"stashkit.prefix": self._prefix}):
            report = StorageDiagnostics()
            try:
                inspections = self._inspect_namespace()
            except BackendReadError as e:
                logger.error("Cannot enumerate %s* for diagnostics: %s", self._prefix, e)
                return report
            for inspection in inspections:
                if inspection.status is EntryStatus.ABSENT:
                    continue
                report.total_items += 1
                report.total_size_bytes += inspection.size_bytes
                if inspection.status.purgeable:
                    report.expired_keys.append(inspection.key)
            return report

    def cleanup(self) -> int:
        """Delete every expired, version-mismatched or undecodable entry.

        Returns:
            The number of entries removed.
        """
        with start_storage_span("cleanup", {"stashkit.prefix": self._prefix}) as span:
            try:
                inspections = self._inspect_namespace()
            except BackendReadError as e:
                logger.error("Cannot enumerate %s* for cleanup: %s", self._prefix, e)
                return 0
            removed = sum(
                1
                for inspection in inspections
                if inspection.status.purgeable and self._purge(inspection.key, inspection, source="cleanup")
            )
            span.set_attribute("stashkit.removed", removed)
            if removed:
                logger.info("Cleanup removed %d entries under %s", removed, self._prefix)
            return removed
