"""Typed stores for the dashboard's auth, preference and session data.

Each store is a thin view over a shared StorageEngine that fixes the keys,
TTLs and obfuscation flags its callers use, so a key is always read back
the same way it was written.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from stashkit.config.loader import StorageProfile, build_engine, default_profile
from stashkit.engine import TTL, StorageEngine
from stashkit.types import StorageDiagnostics

SESSION_TTL = timedelta(hours=24)
PREFERENCE_TTL = timedelta(days=365)

USER_KEY = "user"
TOKEN_KEY = "auth_token"
USER_SESSION_KEY = "user_session"
THEME_KEY = "theme"
PREFERENCES_KEY = "preferences"


@dataclass
class AuthStore:
    """Signed-in user and bearer token, obfuscated, valid for 24 hours."""

    engine: StorageEngine

    def set_user(self, user: dict[str, Any]) -> bool:
        return self.engine.set(USER_KEY, user, ttl=SESSION_TTL, obfuscate=True)

    def get_user(self) -> dict[str, Any] | None:
        return self.engine.get(USER_KEY, obfuscated=True)

    def remove_user(self) -> None:
        self.engine.remove(USER_KEY)

    def set_token(self, token: str) -> bool:
        return self.engine.set(TOKEN_KEY, token, ttl=SESSION_TTL, obfuscate=True)

    def get_token(self) -> str | None:
        return self.engine.get(TOKEN_KEY, obfuscated=True)

    def remove_token(self) -> None:
        self.engine.remove(TOKEN_KEY)

    def clear_session(self) -> None:
        """Sign out: drop both the user and the token."""
        self.remove_user()
        self.remove_token()


@dataclass
class PreferenceStore:
    """Theme and UI preferences, stored plain, valid for a year."""

    engine: StorageEngine

    def set_theme(self, theme: str) -> bool:
        return self.engine.set(THEME_KEY, theme, ttl=PREFERENCE_TTL, obfuscate=False)

    def get_theme(self) -> str | None:
        return self.engine.get(THEME_KEY, obfuscated=False)

    def set_preferences(self, prefs: dict[str, Any]) -> bool:
        return self.engine.set(PREFERENCES_KEY, prefs, ttl=PREFERENCE_TTL, obfuscate=False)

    def get_preferences(self) -> dict[str, Any] | None:
        return self.engine.get(PREFERENCES_KEY, obfuscated=False)


@dataclass
class SessionStore:
    """Ad hoc session data, obfuscated.

    ``set_secure``/``get_secure`` only accept keys listed in the engine's
    ``obfuscated_keys``. Cleanup decodes entries using that list, so an
    obfuscated entry under any other key would be swept as unreadable.
    """

    engine: StorageEngine

    def _require_declared(self, key: str) -> None:
        if key not in self.engine.obfuscated_keys:
            raise ValueError(
                f"Key '{key}' is not declared in the engine's obfuscated_keys; "
                "add it to the storage profile before storing it obfuscated"
            )

    def set_user_session(self, data: Any) -> bool:
        return self.engine.set(USER_SESSION_KEY, data, ttl=SESSION_TTL, obfuscate=True)

    def get_user_session(self) -> Any:
        return self.engine.get(USER_SESSION_KEY, obfuscated=True)

    def clear_user_session(self) -> None:
        self.engine.remove(USER_SESSION_KEY)

    def set_secure(self, key: str, data: Any, ttl: TTL | None = None) -> bool:
        """Store *data* obfuscated. Raises ValueError for undeclared keys."""
        self._require_declared(key)
        return self.engine.set(key, data, ttl=ttl, obfuscate=True)

    def get_secure(self, key: str) -> Any:
        self._require_declared(key)
        return self.engine.get(key, obfuscated=True)


class Stash:
    """All dashboard stores over one engine, plus maintenance helpers."""

    def __init__(self, engine: StorageEngine) -> None:
        self.engine = engine
        self.auth = AuthStore(engine)
        self.preferences = PreferenceStore(engine)
        self.session = SessionStore(engine)

    @classmethod
    def from_profile(cls, profile: StorageProfile | None = None, **kwargs: Any) -> Stash:
        """Build the engine a profile describes and wrap it.

        Keyword arguments are passed on to ``build_engine``.
        """
        return cls(build_engine(profile or default_profile(), **kwargs))

    def cleanup(self) -> int:
        return self.engine.cleanup()

    def info(self) -> StorageDiagnostics:
        return self.engine.diagnostics()

    def clear(self) -> int:
        return self.engine.clear()
