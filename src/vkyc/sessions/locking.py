"""Per-session serialization of mutating operations."""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class _Entry:
    lock: threading.RLock = field(default_factory=threading.RLock)
    users: int = 0


class SessionLocks:
    """Keyed locks: one per session id, dropped when no longer held.

    The registry mutex only guards the dict; it is never held while a caller
    runs, so operations on different sessions proceed in parallel.
    """

    def __init__(self) -> None:
        self._registry = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        with self._registry:
            entry = self._entries.setdefault(session_id, _Entry())
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._registry:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[session_id]

    def __len__(self) -> int:
        with self._registry:
            return len(self._entries)
