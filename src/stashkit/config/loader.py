"""Storage profile loader — parse, validate against JSON Schema, compute profile hash."""

from __future__ import annotations

import hashlib
import importlib.resources as _resources
import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

import jsonschema
import yaml

from stashkit.audit import EventSink, FileSink, StdoutSink
from stashkit.engine import DEFAULT_PREFIX, DEFAULT_TTL, StorageEngine, as_ttl
from stashkit.envelope import CURRENT_FORMAT_VERSION
from stashkit.errors import StashKitConfigError
from stashkit.storage import JsonFileBackend, MemoryBackend, StorageBackend

MAX_PROFILE_SIZE = 1_048_576  # 1 MB

# Keys the dashboard consumers store obfuscated.
DEFAULT_OBFUSCATED_KEYS = ("user", "auth_token", "user_session")

# Lazy-loaded schema singleton
_schema_cache: dict | None = None


def _get_schema() -> dict:
    """Load and cache the JSON Schema for validation."""
    global _schema_cache  # noqa: PLW0603
    if _schema_cache is None:
        schema_text = (
            _resources.files("stashkit.config").joinpath("stashkit-v1.schema.json").read_text(encoding="utf-8")
        )
        _schema_cache = json.loads(schema_text)
    return _schema_cache


@dataclass(frozen=True)
class ProfileHash:
    """SHA256 hash of raw profile bytes."""

    hex: str

    def __str__(self) -> str:
        return self.hex


@dataclass(frozen=True)
class StorageProfile:
    """Everything needed to build a StorageEngine and its backend."""

    name: str
    prefix: str = DEFAULT_PREFIX
    default_ttl: timedelta | None = DEFAULT_TTL
    format_version: str = CURRENT_FORMAT_VERSION
    obfuscated_keys: tuple[str, ...] = DEFAULT_OBFUSCATED_KEYS
    backend_type: str = "memory"
    backend_path: Path | None = None
    quota_bytes: int | None = None
    audit_stdout: bool = False
    audit_file: Path | None = None
    description: str = ""


def default_profile() -> StorageProfile:
    """The dashboard defaults: in-memory backend, 7-day TTL, version 1.0.0."""
    return StorageProfile(name="default")


def _compute_hash(raw_bytes: bytes) -> ProfileHash:
    """Compute SHA256 hash of raw YAML bytes."""
    return ProfileHash(hex=hashlib.sha256(raw_bytes).hexdigest())


def _validate_schema(data: dict) -> None:
    """Validate parsed YAML against the stashkit JSON Schema."""
    schema = _get_schema()
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise StashKitConfigError(f"Schema validation failed: {e.message}") from e


def _validate_unique_keys(data: dict) -> None:
    """Ensure obfuscated keys are listed once each."""
    seen: set[str] = set()
    for key in data["storage"].get("obfuscated_keys", []):
        if key in seen:
            raise StashKitConfigError(f"Duplicate obfuscated key: '{key}'")
        seen.add(key)


def _validate_backend(data: dict) -> None:
    """A file backend needs a path; a memory backend must not have one."""
    backend = data.get("backend", {"type": "memory"})
    if backend["type"] == "file" and "path" not in backend:
        raise StashKitConfigError("backend.path is required when backend.type is 'file'")
    if backend["type"] == "memory" and "path" in backend:
        raise StashKitConfigError("backend.path is only valid when backend.type is 'file'")


def _resolve(base: Path, value: str | None) -> Path | None:
    if value is None:
        return None
    path = Path(value).expanduser()
    return path if path.is_absolute() else base / path


def _default_ttl(storage: dict) -> timedelta | None:
    ttl_seconds = storage.get("default_ttl_seconds", DEFAULT_TTL.total_seconds())
    if ttl_seconds is None:
        return None
    try:
        return as_ttl(ttl_seconds)
    except (TypeError, ValueError) as e:
        raise StashKitConfigError(f"Invalid storage.default_ttl_seconds: {e}") from e


def _to_profile(data: dict, base: Path) -> StorageProfile:
    storage = data["storage"]
    backend = data.get("backend", {"type": "memory"})
    audit = data.get("audit", {})

    return StorageProfile(
        name=data["metadata"]["name"],
        description=data["metadata"].get("description", ""),
        prefix=storage["prefix"],
        default_ttl=_default_ttl(storage),
        format_version=storage.get("format_version", CURRENT_FORMAT_VERSION),
        obfuscated_keys=tuple(storage.get("obfuscated_keys", DEFAULT_OBFUSCATED_KEYS)),
        backend_type=backend["type"],
        backend_path=_resolve(base, backend.get("path")),
        quota_bytes=backend.get("quota_bytes"),
        audit_stdout=audit.get("stdout", False),
        audit_file=_resolve(base, audit.get("file")),
    )


def load_profile(source: str | Path) -> tuple[StorageProfile, ProfileHash]:
    """Load and validate a YAML storage profile.

    Relative paths inside the profile are resolved against the directory
    containing the profile file.

    Args:
        source: Path to a YAML file.

    Returns:
        Tuple of (storage profile, profile hash).

    Raises:
        StashKitConfigError: If the YAML is invalid, fails schema validation,
            repeats an obfuscated key, or describes an unusable backend.
        FileNotFoundError: If the file does not exist.
    """
    path = Path(source)

    file_size = path.stat().st_size
    if file_size > MAX_PROFILE_SIZE:
        raise StashKitConfigError(f"Profile file too large ({file_size} bytes, max {MAX_PROFILE_SIZE})")

    raw_bytes = path.read_bytes()
    profile_hash = _compute_hash(raw_bytes)

    try:
        data = yaml.safe_load(raw_bytes)
    except yaml.YAMLError as e:
        raise StashKitConfigError(f"YAML parse error: {e}") from e

    if not isinstance(data, dict):
        raise StashKitConfigError("YAML document must be a mapping")

    _validate_schema(data)
    _validate_unique_keys(data)
    _validate_backend(data)

    return _to_profile(data, path.parent), profile_hash


def build_backend(profile: StorageProfile) -> StorageBackend:
    """Instantiate the backend a profile describes."""
    if profile.backend_type == "file":
        if profile.backend_path is None:
            raise StashKitConfigError("A file backend needs a path")
        return JsonFileBackend(profile.backend_path, quota_bytes=profile.quota_bytes)
    if profile.backend_type == "memory":
        return MemoryBackend(quota_bytes=profile.quota_bytes)
    raise StashKitConfigError(f"Unknown backend type: '{profile.backend_type}'")


def build_engine(
    profile: StorageProfile,
    *,
    backend: StorageBackend | None = None,
    sinks: Iterable[EventSink] = (),
    clock: Callable[[], datetime] | None = None,
) -> StorageEngine:
    """Build a StorageEngine from a profile.

    Args:
        profile: The validated profile.
        backend: Overrides the backend the profile describes.
        sinks: Extra purge event sinks, added to those the profile enables.
        clock: Overrides the engine's UTC wall clock.
    """
    all_sinks: list[EventSink] = []
    if profile.audit_stdout:
        all_sinks.append(StdoutSink())
    if profile.audit_file is not None:
        all_sinks.append(FileSink(profile.audit_file))
    all_sinks.extend(sinks)

    return StorageEngine(
        backend if backend is not None else build_backend(profile),
        prefix=profile.prefix,
        default_ttl=profile.default_ttl,
        format_version=profile.format_version,
        obfuscated_keys=profile.obfuscated_keys,
        sinks=all_sinks,
        clock=clock,
    )
