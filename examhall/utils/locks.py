"""Per-key mutual exclusion."""
import threading
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    """Hands out one lock per key so unrelated keys never contend.

    Entries are reference counted and dropped once nobody holds or waits
    on them, so the registry does not grow with the number of candidates.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
