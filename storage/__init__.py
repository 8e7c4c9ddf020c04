import logging

from storage.base import KeyValueStore, StorageUnavailable
from storage.file import FileStore
from storage.memory import InMemoryStore
from storage.redis_store import RedisStore
from storage.sql import SqlStore

logger = logging.getLogger(__name__)

BACKENDS = ("auto", "memory", "file", "redis", "sql")


def build_store(config) -> KeyValueStore:
    """
    Pick the key-value backend once, at startup.

    "auto" prefers Redis when REDIS_URL is set, then the JSON file store when
    STORE_FILE_PATH is set, and finally the process-local memory store.
    """
    backend = (config.get("STORE_BACKEND") or "auto").lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown STORE_BACKEND {backend!r}; expected one of {', '.join(BACKENDS)}")

    redis_url = config.get("REDIS_URL")
    file_path = config.get("STORE_FILE_PATH")

    if backend == "auto":
        if redis_url:
            backend = "redis"
        elif file_path:
            backend = "file"
        else:
            backend = "memory"

    if backend == "redis":
        if not redis_url:
            raise ValueError("STORE_BACKEND=redis requires REDIS_URL")
        store = RedisStore.from_url(redis_url, socket_timeout=config.get("REDIS_SOCKET_TIMEOUT", 2.0))
    elif backend == "file":
        if not file_path:
            raise ValueError("STORE_BACKEND=file requires STORE_FILE_PATH")
        store = FileStore(file_path)
    elif backend == "sql":
        store = SqlStore()
    else:
        store = InMemoryStore()

    if store.name == "memory":
        logger.warning("Using in-memory store: OTP, CSRF and rate-limit state are per-process")
    else:
        logger.info("Using %s store", store.name)
    return store


__all__ = [
    "KeyValueStore",
    "StorageUnavailable",
    "InMemoryStore",
    "FileStore",
    "RedisStore",
    "SqlStore",
    "build_store",
]
