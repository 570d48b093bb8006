"""PurgeEvent, EventSink protocol, StdoutSink, and FileSink.

Every entry the engine deletes on its own initiative (an expired, stale
or corrupt entry found by a read, or anything swept by ``cleanup()``)
produces a PurgeEvent. Reads cannot tell a purged entry from a missing
one, so sinks are the place to look when that distinction matters.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, TextIO

from stashkit.types import EntryStatus


@dataclass
class PurgeEvent:
    """A structured record of one self-healing delete."""

    key: str
    reason: EntryStatus
    source: str  # "read" | "cleanup"
    prefix: str = ""
    detail: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "reason": self.reason.value,
            "source": self.source,
            "prefix": self.prefix,
            "detail": self.detail,
            "timestamp": self.timestamp.isoformat(),
        }


class EventSink(Protocol):
    """Protocol for purge event destinations."""

    def emit(self, event: PurgeEvent) -> None:
        """Record a purge event."""
        ...


def _json_line(event: PurgeEvent) -> str:
    # keys are user-chosen text; keep them readable in the log
    return json.dumps(event.to_dict(), ensure_ascii=False) + "\n"


class StdoutSink:
    """Writes purge events as JSON lines to *stream*, stdout by default."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def emit(self, event: PurgeEvent) -> None:
        stream = self._stream or sys.stdout
        stream.write(_json_line(event))
        stream.flush()


class FileSink:
    """Appends purge events to a UTF-8 file as JSON lines.

    The parent directory is created on first write, so a profile can point
    the audit log at a directory that does not exist yet.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def emit(self, event: PurgeEvent) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as f:
            f.write(_json_line(event))


class CollectingSink:
    """Keeps purge events in memory. Useful in tests and for UI reporting."""

    def __init__(self) -> None:
        self.events: list[PurgeEvent] = []

    def emit(self, event: PurgeEvent) -> None:
        self.events.append(event)
