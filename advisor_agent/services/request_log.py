"""Thread-safe, bounded feed of recent API traffic.

Each entry mirrors what a "live log" viewer shows: the inbound request
payload, then either the reply that was returned or an error.  The
oldest entries are dropped once ``max_entries`` is reached; reads are
newest-first.  Purely ephemeral.
"""

from __future__ import annotations

import threading
import uuid
from collections import deque
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

EntryType = Literal["request", "response", "error"]

DEFAULT_MAX_ENTRIES = 200


class LogEntry(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:9])
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    type: EntryType
    data: Any = None


class RequestLog:
    """Ring buffer of :class:`LogEntry` objects."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=max(1, max_entries))
        self._lock = threading.Lock()

    def record(self, entry_type: EntryType, data: Any) -> LogEntry:
        entry = LogEntry(type=entry_type, data=data)
        with self._lock:
            self._entries.append(entry)
        return entry

    def recent(self, limit: int | None = None) -> list[LogEntry]:
        """Newest-first snapshot, optionally capped at *limit* entries."""
        with self._lock:
            entries = list(reversed(self._entries))
        if limit is not None:
            entries = entries[:limit]
        return entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
