import heapq
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from storage.base import KeyValueStore

_Entry = Tuple[str, Optional[float]]


class InMemoryStore(KeyValueStore):
    """
    Process-local store. Suitable for development and tests only.

    Expiry times are also kept in a min-heap so every write can drop the
    entries that have expired, including keys that are never read again
    (old rate-limit windows, unused CSRF tokens).
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: Dict[str, _Entry] = {}
        self._expiries: List[Tuple[float, str]] = []
        self._lock = threading.Lock()

    def _live(self, key: str) -> Optional[_Entry]:
        entry = self._data.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    def _put(self, key: str, value: str, expires_at: Optional[float]) -> None:
        self._data[key] = (value, expires_at)
        if expires_at is not None:
            heapq.heappush(self._expiries, (expires_at, key))

    def _purge_expired(self) -> None:
        now = self._clock()
        while self._expiries and self._expiries[0][0] <= now:
            expires_at, key = heapq.heappop(self._expiries)
            entry = self._data.get(key)
            # Skip heap records left behind by a later set/expire on the key
            if entry is not None and entry[1] == expires_at:
                del self._data[key]

    def get(self, key):
        with self._lock:
            entry = self._live(key)
            return entry[0] if entry else None

    def set(self, key, value, ex=None):
        with self._lock:
            self._purge_expired()
            self._put(key, str(value), self._clock() + ex if ex else None)

    def incr(self, key):
        with self._lock:
            self._purge_expired()
            entry = self._live(key)
            if entry is None:
                self._put(key, "1", None)
                return 1
            count = int(entry[0]) + 1
            self._data[key] = (str(count), entry[1])
            return count

    def expire(self, key, seconds):
        with self._lock:
            self._purge_expired()
            entry = self._live(key)
            if entry is None:
                return False
            self._put(key, entry[0], self._clock() + seconds)
            return True

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)
