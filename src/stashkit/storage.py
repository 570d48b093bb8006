"""StorageBackend protocol, MemoryBackend and JsonFileBackend.

Backends are plain string-keyed maps. They know nothing about envelopes,
prefixes or expiry; the engine layers all of that on top. A backend
signals a failed write by raising ``BackendWriteError`` and must leave
any previous value for the key untouched when it does.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol

from stashkit.errors import BackendReadError, BackendWriteError, QuotaExceededError

logger = logging.getLogger(__name__)


def entry_size(key: str, value: str) -> int:
    """Bytes an entry occupies: UTF-8 length of its key plus its value."""
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class StorageBackend(Protocol):
    """Protocol for the persistent map behind a StorageEngine."""

    def get(self, key: str) -> str | None:
        """Retrieve a value by key, or None if absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value by key. Raises BackendWriteError on failure."""
        ...

    def delete(self, key: str) -> None:
        """Delete a value by key. Deleting a missing key is a no-op."""
        ...

    def list_keys(self, prefix: str = "") -> list[str]:
        """List all keys with the given prefix."""
        ...


def _check_quota(entries: dict[str, str], key: str, value: str, quota_bytes: int | None) -> None:
    if quota_bytes is None:
        return
    needed = sum(entry_size(k, v) for k, v in entries.items() if k != key) + entry_size(key, value)
    if needed > quota_bytes:
        raise QuotaExceededError(key, needed, quota_bytes)


class MemoryBackend:
    """In-memory backend for development and testing.

    Args:
        quota_bytes: Optional cap on the total size of all entries, in the
            units of ``entry_size``. Writes that would exceed it fail.
    """

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._store: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def set(self, key: str, value: str) -> None:
        _check_quota(self._store, key, value, self._quota_bytes)
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def list_keys(self, prefix: str = "") -> list[str]:
        return [k for k in self._store if k.startswith(prefix)]


class JsonFileBackend:
    """Persists the whole map as one JSON object in a file.

    The file is re-read on every call so separate processes see each
    other's writes. Each write replaces the file atomically, but there is
    no locking between processes: concurrent writers can lose updates.
    """

    def __init__(self, path: str | Path, quota_bytes: int | None = None) -> None:
        self._path = Path(path)
        self._quota_bytes = quota_bytes

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise BackendReadError(f"Cannot read {self._path}: {e}") from e

        try:
            data = json.loads(raw)
        except ValueError as e:
            raise BackendReadError(f"{self._path} is not valid JSON: {e}") from e
        if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
            raise BackendReadError(f"{self._path} must hold a JSON object of strings")
        return data

    def _write(self, entries: dict[str, str]) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(entries, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path)
        except OSError as e:
            raise BackendWriteError(f"Cannot write {self._path}: {e}") from e

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            entries = self._load()
        except BackendReadError as e:
            raise BackendWriteError(str(e)) from e
        _check_quota(entries, key, value, self._quota_bytes)
        entries[key] = value
        self._write(entries)

    def delete(self, key: str) -> None:
        entries = self._load()
        if entries.pop(key, None) is not None:
            self._write(entries)
            logger.debug("Deleted %s from %s", key, self._path)

    def list_keys(self, prefix: str = "") -> list[str]:
        return [k for k in self._load() if k.startswith(prefix)]
