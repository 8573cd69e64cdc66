"""Filesystem NDJSON event sink with locked appends.

Events are appended as one JSON line per event to
``<project>/logs/events.ndjson``.  Writes use ``json.dumps(sort_keys=True)``
for deterministic output.

Appends hold an exclusive ``fcntl.flock`` on the file and reads hold a
shared one.  Where ``fcntl`` is missing (Windows) the same file
operations run unlocked.
"""

from __future__ import annotations

import json
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from gridcalc.logging.events import GridEvent

try:
    import fcntl
except ImportError:
    fcntl = None  # type: ignore[assignment]
    print("[gridcalc] fcntl not available; log file locking disabled", file=sys.stderr)

_DEFAULT_TAIL_BYTES = 2 * 1024 * 1024

EVENTS_FILENAME = "events.ndjson"


@contextmanager
def _open_locked(path: Path, flags: int, *, exclusive: bool) -> Iterator[int]:
    """Open *path* as a raw descriptor, holding a flock while it is in use."""
    fd = os.open(str(path), flags)
    try:
        if fcntl is not None:
            fcntl.flock(fd, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
        yield fd
    finally:
        if fcntl is not None:
            fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)


class EventSink:
    """Append-only NDJSON writer for grid events."""

    def __init__(self, project_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.logs_dir = project_dir / "logs"
        self._fsync = fsync
        self._tail_bytes = tail_bytes if tail_bytes is not None else _DEFAULT_TAIL_BYTES
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self.logs_dir / EVENTS_FILENAME

    def write(self, event: GridEvent) -> None:
        """Append *event* as one line."""
        record = json.dumps(event.model_dump(mode="json"), sort_keys=True, default=str) + "\n"
        with _open_locked(self.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, exclusive=True) as fd:
            os.write(fd, record.encode("utf-8"))
            if self._fsync:
                os.fsync(fd)

    def read_events(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Newest events first, filtered by level and event type.

        Only the last ``tail_bytes`` of the file are looked at; lines that
        are not valid JSON are skipped.
        """
        cap = min(limit, 2000)
        if cap <= 0 or not self.path.exists():
            return []

        matched: list[dict[str, Any]] = []
        for raw in reversed(self._tail().splitlines()):
            if not raw.strip():
                continue
            try:
                event = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if not isinstance(event, dict):
                continue
            if level and event.get("level") != level:
                continue
            if event_type and event.get("event_type") != event_type:
                continue
            matched.append(event)
            if len(matched) >= cap:
                break
        return matched

    def _tail(self) -> str:
        with _open_locked(self.path, os.O_RDONLY, exclusive=False) as fd:
            size = os.fstat(fd).st_size
            start = max(0, size - self._tail_bytes)
            os.lseek(fd, start, os.SEEK_SET)
            data = os.read(fd, size - start)
        if start:
            # The first line of a cut tail is usually partial.
            _, _, data = data.partition(b"\n")
        return data.decode("utf-8", errors="replace")
