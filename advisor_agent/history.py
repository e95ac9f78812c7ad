"""Per-session dialogue history and its compaction policy.

Design decisions
────────────────
• **HistoryStore** is an interface so that a bounded or expiring store can
  be dropped in without touching the orchestrator.
• **InMemoryHistoryStore** keeps sessions in an ``OrderedDict``.  With
  ``max_sessions=0`` it never evicts (the session map grows with the number
  of users); with ``max_sessions > 0`` the least-recently-used session is
  evicted first.
• **threading.Lock** guards the session map.  ``session_lock`` is a context
  manager that serialises a read → call → append cycle for one session
  while other sessions proceed.  Session locks are reference counted and
  dropped once nobody holds or waits on them, so the lock map only ever
  holds sessions with a call in flight.
• Purely ephemeral: history is lost on process restart.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Iterator, Sequence
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from typing import Literal

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

Role = Literal["user", "agent"]


class Turn(BaseModel):
    """One message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str

    @classmethod
    def user(cls, text: str) -> Turn:
        return cls(role="user", text=text)

    @classmethod
    def agent(cls, text: str) -> Turn:
        return cls(role="agent", text=text)

    def to_message(self) -> BaseMessage:
        """Convert to the LangChain message type the provider expects."""
        if self.role == "user":
            return HumanMessage(content=self.text)
        return AIMessage(content=self.text)


# ── Compaction policy ────────────────────────────────────────────────


@dataclass(frozen=True)
class CompactionPolicy:
    """When to compact, and how many recent turns survive verbatim."""

    history_limit: int = 10
    retain_count: int = 4

    @property
    def enabled(self) -> bool:
        # history_limit <= retain_count leaves nothing to summarise
        return self.history_limit > self.retain_count and self.retain_count >= 0

    def needs_compaction(self, turns: Sequence[Turn]) -> bool:
        return self.enabled and len(turns) >= self.history_limit

    def split(self, turns: Sequence[Turn]) -> tuple[list[Turn], list[Turn]]:
        """Return ``(summarization_window, retained_tail)``."""
        cut = len(turns) - self.retain_count
        return list(turns[:cut]), list(turns[cut:])


# ── Store interface ──────────────────────────────────────────────────


class HistoryStore(ABC):
    """Owner of every session's ordered list of turns."""

    @abstractmethod
    def get(self, session_id: str) -> list[Turn]:
        """Return a copy of the session's turns (empty if unseen)."""

    @abstractmethod
    def append(self, session_id: str, turn: Turn) -> None:
        """Append one turn, creating the session if needed."""

    @abstractmethod
    def replace(self, session_id: str, turns: Sequence[Turn]) -> None:
        """Overwrite the session's turns (used by compaction)."""

    @abstractmethod
    def session_lock(self, session_id: str) -> AbstractContextManager[None]:
        """Hold exclusive access to one session for the duration of the block."""

    def extend(self, session_id: str, turns: Sequence[Turn]) -> None:
        for turn in turns:
            self.append(session_id, turn)


class _SessionLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class InMemoryHistoryStore(HistoryStore):
    """Process-local store, optionally bounded by session count (LRU)."""

    def __init__(self, max_sessions: int = 0) -> None:
        self._max_sessions = max_sessions
        self._sessions: OrderedDict[str, list[Turn]] = OrderedDict()
        self._session_locks: dict[str, _SessionLock] = {}
        self._lock = threading.Lock()

    # ── Core operations ──────────────────────────────────────────────

    def get(self, session_id: str) -> list[Turn]:
        with self._lock:
            turns = self._sessions.get(session_id)
            if turns is None:
                return []
            self._sessions.move_to_end(session_id)
            return list(turns)

    def append(self, session_id: str, turn: Turn) -> None:
        with self._lock:
            turns = self._sessions.get(session_id)
            if turns is None:
                turns = []
                self._sessions[session_id] = turns
                self._evict_if_needed()
            turns.append(turn)
            self._sessions.move_to_end(session_id)

    def extend(self, session_id: str, turns: Sequence[Turn]) -> None:
        # Both turns of an exchange land under one lock acquisition.
        with self._lock:
            existing = self._sessions.get(session_id)
            if existing is None:
                existing = []
                self._sessions[session_id] = existing
                self._evict_if_needed()
            existing.extend(turns)
            self._sessions.move_to_end(session_id)

    def replace(self, session_id: str, turns: Sequence[Turn]) -> None:
        with self._lock:
            is_new = session_id not in self._sessions
            self._sessions[session_id] = list(turns)
            self._sessions.move_to_end(session_id)
            if is_new:
                self._evict_if_needed()

    @contextmanager
    def session_lock(self, session_id: str) -> Iterator[None]:
        # Register as a user under the map lock, so the entry cannot be
        # dropped between lookup and acquire.
        with self._lock:
            entry = self._session_locks.get(session_id)
            if entry is None:
                entry = _SessionLock()
                self._session_locks[session_id] = entry
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._session_locks[session_id]

    # ── Introspection ────────────────────────────────────────────────

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def lock_count(self) -> int:
        """Sessions with a call holding or waiting on their lock."""
        return len(self._session_locks)

    def has(self, session_id: str) -> bool:
        """Check if a session exists *without* promoting it."""
        return session_id in self._sessions

    # ── Internal ──────────────────────────────────────────────────────

    def _evict_if_needed(self) -> None:
        """Drop least-recently-used sessions beyond ``max_sessions``.

        Caller must hold ``self._lock``.  The newest session (just inserted
        at the end) is never a candidate.
        """
        if self._max_sessions <= 0:
            return
        while len(self._sessions) > self._max_sessions:
            evicted_id, evicted = self._sessions.popitem(last=False)
            logger.debug("History: evicted session %s (%d turns)", evicted_id, len(evicted))
