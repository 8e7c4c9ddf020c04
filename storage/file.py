import json
import logging
import os
import tempfile
import threading
import time
from typing import Callable, Dict

from storage.base import KeyValueStore, StorageUnavailable

logger = logging.getLogger(__name__)


class FileStore(KeyValueStore):
    """
    Degraded-mode store backed by a single JSON file.

    Layout: {"<key>": {"value": "<str>", "expires_at": <epoch seconds|null>}}
    Every mutation rewrites the file through an atomic rename. Only safe for
    a single process; the lock serialises threads inside that process.
    """

    name = "file"

    def __init__(self, path: str, clock: Callable[[], float] = time.time):
        self.path = os.path.abspath(path)
        self._clock = clock
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, dict]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            raise StorageUnavailable(f"Cannot read store file {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StorageUnavailable(f"Store file {self.path} is not a JSON object")

        now = self._clock()
        return {
            k: v for k, v in data.items()
            if isinstance(v, dict) and (v.get("expires_at") is None or v["expires_at"] > now)
        }

    def _save(self, data: Dict[str, dict]) -> None:
        directory = os.path.dirname(self.path)
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".store-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageUnavailable(f"Cannot write store file {self.path}: {exc}") from exc

    def get(self, key):
        with self._lock:
            entry = self._load().get(key)
            return entry["value"] if entry else None

    def set(self, key, value, ex=None):
        with self._lock:
            data = self._load()
            data[key] = {
                "value": str(value),
                "expires_at": self._clock() + ex if ex else None,
            }
            self._save(data)

    def incr(self, key):
        with self._lock:
            data = self._load()
            entry = data.get(key)
            if entry is None:
                entry = {"value": "0", "expires_at": None}
            try:
                count = int(entry["value"]) + 1
            except ValueError as exc:
                raise StorageUnavailable(f"Value at {key!r} is not an integer") from exc
            entry["value"] = str(count)
            data[key] = entry
            self._save(data)
            return count

    def expire(self, key, seconds):
        with self._lock:
            data = self._load()
            entry = data.get(key)
            if entry is None:
                return False
            entry["expires_at"] = self._clock() + seconds
            self._save(data)
            return True

    def delete(self, key):
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._save(data)
