"""Shared fixtures: a controllable clock and ready-made engines."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from stashkit import CollectingSink, MemoryBackend, StorageEngine


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def engine(backend: MemoryBackend, clock: FakeClock, sink: CollectingSink) -> StorageEngine:
    return StorageEngine(backend, prefix="test_", clock=clock, sinks=[sink])
