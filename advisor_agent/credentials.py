"""Round-robin pool of provider API credentials.

Rotation never eliminates a credential: one that failed on this call is
simply tried again on a later cycle.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from advisor_agent.errors import ConfigurationError

logger = logging.getLogger(__name__)


def mask_credential(credential: str) -> str:
    """Return a log-safe rendering of *credential* (``sk-…abcd``)."""
    if len(credential) <= 8:
        return "…" + credential[-2:]
    return f"{credential[:3]}…{credential[-4:]}"


class CredentialPool:
    """Ordered, non-empty set of credentials with a wrapping cursor."""

    def __init__(self, credentials: Iterable[str], start: int = 0) -> None:
        self._credentials = [c for c in credentials if c]
        if not self._credentials:
            raise ConfigurationError("Credential pool needs at least one API key.")
        self._cursor = start % len(self._credentials)
        self._lock = threading.Lock()

    def current(self) -> str:
        """Credential under the cursor."""
        with self._lock:
            return self._credentials[self._cursor]

    def current_index(self) -> int:
        with self._lock:
            return self._cursor

    def snapshot(self) -> tuple[int, str]:
        """``(index, credential)`` read under one lock acquisition."""
        with self._lock:
            return self._cursor, self._credentials[self._cursor]

    def rotate(self) -> int:
        """Advance the cursor by one (wrapping).  Returns the new index."""
        with self._lock:
            previous = self._cursor
            self._cursor = (self._cursor + 1) % len(self._credentials)
            new = self._cursor
        logger.info("Rotated API credential %d -> %d", previous, new)
        return new

    def size(self) -> int:
        return len(self._credentials)

    def __len__(self) -> int:
        return len(self._credentials)

    def describe(self, index: int) -> str:
        """Masked form of the credential at *index*, for diagnostics."""
        return mask_credential(self._credentials[index % len(self._credentials)])
