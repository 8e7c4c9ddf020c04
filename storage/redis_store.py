import redis

from storage.base import KeyValueStore, StorageUnavailable


class RedisStore(KeyValueStore):
    """Redis-backed store. The client must be created with decode_responses=True."""

    name = "redis"

    def __init__(self, client: "redis.Redis"):
        self._redis = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 2.0) -> "RedisStore":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def get(self, key):
        try:
            return self._redis.get(key)
        except redis.RedisError as exc:
            raise StorageUnavailable(str(exc)) from exc

    def set(self, key, value, ex=None):
        try:
            self._redis.set(key, value, ex=ex)
        except redis.RedisError as exc:
            raise StorageUnavailable(str(exc)) from exc

    def incr(self, key):
        try:
            return int(self._redis.incr(key))
        except redis.RedisError as exc:
            raise StorageUnavailable(str(exc)) from exc

    def expire(self, key, seconds):
        try:
            return bool(self._redis.expire(key, seconds))
        except redis.RedisError as exc:
            raise StorageUnavailable(str(exc)) from exc

    def delete(self, key):
        try:
            self._redis.delete(key)
        except redis.RedisError as exc:
            raise StorageUnavailable(str(exc)) from exc
