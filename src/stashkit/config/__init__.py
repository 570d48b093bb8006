"""Storage profiles — load YAML profiles and build engines from them.

Requires pyyaml and jsonschema, both core dependencies of stashkit.
"""

from __future__ import annotations

from stashkit.config.loader import (
    DEFAULT_OBFUSCATED_KEYS,
    ProfileHash,
    StorageProfile,
    build_backend,
    build_engine,
    default_profile,
    load_profile,
)

__all__ = [
    "DEFAULT_OBFUSCATED_KEYS",
    "ProfileHash",
    "StorageProfile",
    "build_backend",
    "build_engine",
    "default_profile",
    "load_profile",
]
