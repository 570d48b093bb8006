"""Tests for the auth, preference and session stores."""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

import stashkit
from stashkit import MemoryBackend
from stashkit.config import DEFAULT_OBFUSCATED_KEYS, default_profile
from stashkit.namespaces import PREFERENCE_TTL, SESSION_TTL, Stash


@pytest.fixture
def stash(clock) -> Stash:
    return Stash.from_profile(default_profile(), backend=MemoryBackend(), clock=clock)


@pytest.fixture
def wizard_stash(clock) -> Stash:
    profile = replace(default_profile(), obfuscated_keys=DEFAULT_OBFUSCATED_KEYS + ("wizard_step",))
    return Stash.from_profile(profile, backend=MemoryBackend(), clock=clock)


class TestAuthStore:
    def test_user_round_trip(self, stash):
        assert stash.auth.set_user({"id": "1", "email": "ana@example.com"})
        assert stash.auth.get_user() == {"id": "1", "email": "ana@example.com"}

    def test_user_is_obfuscated(self, stash):
        stash.auth.set_user({"email": "ana@example.com"})
        raw = stash.engine.backend.get("radix_dashboard_user")
        assert "ana@example.com" not in raw

    def test_token_expires_after_session_ttl(self, stash, clock):
        stash.auth.set_token("tok-123")
        clock.advance(seconds=SESSION_TTL.total_seconds() - 1)
        assert stash.auth.get_token() == "tok-123"
        clock.advance(hours=2)
        assert stash.auth.get_token() is None

    def test_clear_session(self, stash):
        stash.auth.set_user({"id": "1"})
        stash.auth.set_token("tok-123")
        stash.preferences.set_theme("dark")
        stash.auth.clear_session()
        assert stash.auth.get_user() is None
        assert stash.auth.get_token() is None
        assert stash.preferences.get_theme() == "dark"


class TestPreferenceStore:
    def test_theme_is_plain(self, stash):
        stash.preferences.set_theme("dark")
        assert '"data":"dark"' in stash.engine.backend.get("radix_dashboard_theme")
        assert stash.preferences.get_theme() == "dark"

    def test_preferences_last_a_year(self, stash, clock):
        stash.preferences.set_preferences({"compact": True})
        clock.advance(days=364)
        assert stash.preferences.get_preferences() == {"compact": True}
        clock.advance(seconds=PREFERENCE_TTL.total_seconds())
        assert stash.preferences.get_preferences() is None


class TestSessionStore:
    def test_user_session(self, stash):
        stash.session.set_user_session({"cart": [1, 2]})
        assert stash.session.get_user_session() == {"cart": [1, 2]}
        stash.session.clear_user_session()
        assert stash.session.get_user_session() is None

    def test_secure_with_custom_ttl(self, wizard_stash, clock):
        wizard_stash.session.set_secure("wizard_step", 3, ttl=timedelta(minutes=5))
        assert wizard_stash.session.get_secure("wizard_step") == 3
        clock.advance(minutes=6)
        assert wizard_stash.session.get_secure("wizard_step") is None

    def test_secure_entry_survives_cleanup(self, wizard_stash):
        assert wizard_stash.session.set_secure("wizard_step", {"step": 2})
        assert wizard_stash.cleanup() == 0
        assert wizard_stash.info().expired_keys == []
        assert wizard_stash.session.get_secure("wizard_step") == {"step": 2}

    def test_set_secure_rejects_undeclared_key(self, stash):
        with pytest.raises(ValueError, match="not declared"):
            stash.session.set_secure("cart", [1, 2])
        assert stash.engine.backend.get("radix_dashboard_cart") is None

    def test_get_secure_rejects_undeclared_key(self, stash):
        with pytest.raises(ValueError, match="not declared"):
            stash.session.get_secure("cart")


class TestStashMaintenance:
    def test_declared_keys_survive_cleanup(self, stash):
        stash.auth.set_user({"id": "1"})
        stash.auth.set_token("tok")
        stash.session.set_user_session({"a": 1})
        stash.preferences.set_theme("light")
        assert stash.cleanup() == 0
        info = stash.info()
        assert info.total_items == 4
        assert info.expired_keys == []

    def test_clear(self, stash):
        stash.preferences.set_theme("light")
        stash.auth.set_token("tok")
        assert stash.clear() == 2
        assert stash.info().total_items == 0


class TestPackageExports:
    def test_stores_importable_from_package_root(self):
        from stashkit.namespaces import AuthStore, PreferenceStore, SessionStore

        assert stashkit.Stash is Stash
        assert stashkit.AuthStore is AuthStore
        assert stashkit.PreferenceStore is PreferenceStore
        assert stashkit.SessionStore is SessionStore
        assert {"Stash", "AuthStore", "PreferenceStore", "SessionStore"} <= set(stashkit.__all__)
