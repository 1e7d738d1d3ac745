"""Per-pool mutual exclusion."""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class PoolLocks:
    """Registry of one lock per pool id.

    Holding a pool's lock across load, engine call and save keeps two
    operations on the same pool from overwriting each other's reserves.
    An entry lives only while some thread holds or waits on it, so ids
    that never resolve to a pool leave nothing behind.
    """

    def __init__(self):
        self._entries: dict[str, _Entry] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _acquire_entry(self, pool_id: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(pool_id)
            if entry is None:
                entry = self._entries[pool_id] = _Entry()
            entry.users += 1
            return entry

    def _release_entry(self, pool_id: str, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[pool_id]

    @contextmanager
    def hold(self, pool_id: str) -> Iterator[None]:
        entry = self._acquire_entry(pool_id)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(pool_id, entry)
