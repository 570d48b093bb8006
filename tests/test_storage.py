"""Tests for MemoryBackend and JsonFileBackend."""

from __future__ import annotations

import json

import pytest

from stashkit.errors import BackendReadError, BackendWriteError, QuotaExceededError
from stashkit.storage import JsonFileBackend, MemoryBackend, entry_size


@pytest.fixture(params=["memory", "file"])
def any_backend(request, tmp_path):
    if request.param == "memory":
        return MemoryBackend()
    return JsonFileBackend(tmp_path / "store.json")


class TestBackendContract:
    def test_get_missing(self, any_backend):
        assert any_backend.get("nope") is None

    def test_set_and_get(self, any_backend):
        any_backend.set("a_key", "value")
        assert any_backend.get("a_key") == "value"

    def test_overwrite(self, any_backend):
        any_backend.set("k", "one")
        any_backend.set("k", "two")
        assert any_backend.get("k") == "two"

    def test_delete_is_idempotent(self, any_backend):
        any_backend.set("k", "v")
        any_backend.delete("k")
        any_backend.delete("k")
        assert any_backend.get("k") is None

    def test_list_keys_with_prefix(self, any_backend):
        any_backend.set("a_1", "x")
        any_backend.set("a_2", "x")
        any_backend.set("b_1", "x")
        assert sorted(any_backend.list_keys("a_")) == ["a_1", "a_2"]
        assert sorted(any_backend.list_keys()) == ["a_1", "a_2", "b_1"]


class TestQuota:
    def test_entry_size_counts_utf8_bytes(self):
        assert entry_size("k", "é") == 3

    def test_write_over_quota_fails(self):
        backend = MemoryBackend(quota_bytes=10)
        with pytest.raises(QuotaExceededError):
            backend.set("key", "a value that is too long")
        assert backend.get("key") is None

    def test_failed_write_keeps_previous_value(self):
        backend = MemoryBackend(quota_bytes=10)
        backend.set("key", "small")
        with pytest.raises(BackendWriteError):
            backend.set("key", "a value that is too long")
        assert backend.get("key") == "small"

    def test_overwrite_does_not_double_count(self):
        backend = MemoryBackend(quota_bytes=8)
        backend.set("key", "abcd")
        backend.set("key", "wxyz")
        assert backend.get("key") == "wxyz"

    def test_file_backend_quota(self, tmp_path):
        backend = JsonFileBackend(tmp_path / "store.json", quota_bytes=10)
        backend.set("key", "small")
        with pytest.raises(QuotaExceededError):
            backend.set("key", "a value that is too long")
        assert backend.get("key") == "small"


class TestJsonFileBackend:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "store.json"
        JsonFileBackend(path).set("k", "v")
        assert JsonFileBackend(path).get("k") == "v"
        assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v"}

    def test_no_temp_file_left_behind(self, tmp_path):
        backend = JsonFileBackend(tmp_path / "store.json")
        backend.set("k", "v")
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]

    def test_corrupt_file_raises_read_error(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(BackendReadError):
            JsonFileBackend(path).get("k")

    def test_non_string_values_rejected(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({"k": 1}), encoding="utf-8")
        with pytest.raises(BackendReadError):
            JsonFileBackend(path).list_keys()

    def test_write_to_corrupt_file_is_write_error(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(BackendWriteError):
            JsonFileBackend(path).set("k", "v")
        assert path.read_text(encoding="utf-8") == "[]"
