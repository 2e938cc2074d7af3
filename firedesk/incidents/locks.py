"""
FIREDESK Incidents - Per-Record Command Serialization

Commands on the same incident (or alert) run one at a time; commands on
different records never wait on each other. A key's lock lives only while
some command holds or waits on it.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class KeyedLocks:
    """A registry of one lock per key, refcounted by holders and waiters."""

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


_registry = KeyedLocks()


def incident_lock(incident_id: str):
    return _registry.hold(f"incident:{incident_id}")


def alert_lock(alert_id: str):
    return _registry.hold(f"alert:{alert_id}")
