from abc import ABC, abstractmethod
from typing import Optional


class StorageUnavailable(Exception):
    """The backing key-value store could not be reached or failed."""


class KeyValueStore(ABC):
    """
    Minimal key-value contract used by the auth services.
    Values are strings; expiry is in whole seconds.
    Backends raise StorageUnavailable on infrastructure failure.
    """

    name = "abstract"

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        ...

    @abstractmethod
    def incr(self, key: str) -> int:
        """Atomically add 1 to an integer value (missing keys start at 0)."""

    @abstractmethod
    def expire(self, key: str, seconds: int) -> bool:
        """Set a TTL on an existing key. Returns False if the key is absent."""

    @abstractmethod
    def delete(self, key: str) -> None:
        ...
