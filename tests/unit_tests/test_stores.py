"""Tests for the key-value store backends and backend selection."""

import json
from unittest.mock import MagicMock

import pytest
import redis

from models import KvEntry, db
from storage import (
    FileStore,
    InMemoryStore,
    RedisStore,
    SqlStore,
    StorageUnavailable,
    build_store,
)


def _exercise_basic_contract(store, clock):
    assert store.get("missing") is None

    store.set("a", "1")
    assert store.get("a") == "1"

    store.set("ttl", "x", ex=10)
    clock.advance(9)
    assert store.get("ttl") == "x"
    clock.advance(2)
    assert store.get("ttl") is None

    assert store.incr("n") == 1
    assert store.incr("n") == 2
    assert store.expire("n", 5) is True
    assert store.expire("nope", 5) is False
    clock.advance(6)
    assert store.get("n") is None
    assert store.incr("n") == 1

    store.delete("a")
    store.delete("never-existed")
    assert store.get("a") is None


class TestInMemoryStore:
    def test_contract(self, clock):
        _exercise_basic_contract(InMemoryStore(clock=clock), clock)

    def test_incr_keeps_existing_expiry(self, clock):
        store = InMemoryStore(clock=clock)
        store.incr("k")
        store.expire("k", 10)
        store.incr("k")
        clock.advance(11)
        assert store.get("k") is None

    def test_writes_sweep_keys_that_are_never_read_again(self, clock):
        store = InMemoryStore(clock=clock)
        for i in range(1000):
            store.set(f"csrf:token-{i}", "1", ex=3600)
        clock.advance(2 * 3600)
        for window in range(1000):
            store.incr(f"ratelimit:auth:login:127.0.0.1:{window}")
            store.expire(f"ratelimit:auth:login:127.0.0.1:{window}", 60)
        clock.advance(2 * 3600)

        store.set("admin:otp", "123456", ex=300)
        assert set(store._data) == {"admin:otp"}

    def test_sweep_respects_later_rewrites(self, clock):
        store = InMemoryStore(clock=clock)
        store.set("a", "old", ex=10)
        store.set("a", "new")
        store.set("b", "1", ex=10)
        store.expire("b", 100)
        clock.advance(20)

        store.set("c", "1")
        assert store.get("a") == "new"
        assert store.get("b") == "1"


class TestFileStore:
    def test_contract(self, tmp_path, clock):
        _exercise_basic_contract(FileStore(str(tmp_path / "store.json"), clock=clock), clock)

    def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "nested" / "store.json")
        FileStore(path).set("admin:account", '{"email": "a@x.io"}')
        assert FileStore(path).get("admin:account") == '{"email": "a@x.io"}'

        with open(path, encoding="utf-8") as fh:
            assert "admin:account" in json.load(fh)

    def test_corrupt_file_is_unavailable(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(StorageUnavailable):
            FileStore(str(path)).get("k")

    def test_writes_drop_expired_entries_from_the_file(self, tmp_path, clock):
        path = tmp_path / "store.json"
        store = FileStore(str(path), clock=clock)
        for i in range(50):
            store.set(f"csrf:token-{i}", "1", ex=3600)
        clock.advance(2 * 3600)

        store.set("admin:otp", "123456", ex=300)
        with open(path, encoding="utf-8") as fh:
            assert set(json.load(fh)) == {"admin:otp"}


class TestRedisStore:
    def test_delegates_to_client(self):
        client = MagicMock()
        client.get.return_value = "v"
        client.incr.return_value = 3
        client.expire.return_value = 1
        store = RedisStore(client)

        assert store.get("k") == "v"
        store.set("k", "v", ex=300)
        client.set.assert_called_once_with("k", "v", ex=300)
        assert store.incr("c") == 3
        assert store.expire("c", 60) is True
        store.delete("k")
        client.delete.assert_called_once_with("k")

    def test_redis_errors_become_storage_unavailable(self):
        client = MagicMock()
        for method in ("get", "set", "incr", "expire", "delete"):
            getattr(client, method).side_effect = redis.ConnectionError("refused")
        store = RedisStore(client)

        with pytest.raises(StorageUnavailable):
            store.get("k")
        with pytest.raises(StorageUnavailable):
            store.set("k", "v")
        with pytest.raises(StorageUnavailable):
            store.incr("k")
        with pytest.raises(StorageUnavailable):
            store.expire("k", 1)
        with pytest.raises(StorageUnavailable):
            store.delete("k")


class TestSqlStore:
    def test_set_get_incr_delete(self, app):
        with app.app_context():
            store = SqlStore()
            store.set("k", "v", ex=60)
            assert store.get("k") == "v"
            assert KvEntry.query.filter_by(key="k").first().expires_at is not None

            assert store.incr("c") == 1
            assert store.incr("c") == 2
            assert store.expire("c", 60) is True
            assert store.expire("missing", 60) is False

            store.delete("k")
            assert store.get("k") is None

    def test_expired_rows_are_ignored(self, app):
        with app.app_context():
            store = SqlStore()
            store.set("gone", "v", ex=60)
            row = KvEntry.query.filter_by(key="gone").first()
            row.expires_at = row.expires_at.replace(year=2000)
            db.session.commit()

            assert store.get("gone") is None
            assert store.incr("gone") == 1


class TestBuildStore:
    def test_auto_defaults_to_memory(self):
        assert build_store({"STORE_BACKEND": "auto"}).name == "memory"

    def test_auto_prefers_file_path(self, tmp_path):
        store = build_store({"STORE_BACKEND": "auto", "STORE_FILE_PATH": str(tmp_path / "s.json")})
        assert store.name == "file"

    def test_auto_prefers_redis_url(self):
        store = build_store({"STORE_BACKEND": "auto", "REDIS_URL": "redis://localhost:6379/0"})
        assert store.name == "redis"

    def test_explicit_backends(self):
        assert build_store({"STORE_BACKEND": "sql"}).name == "sql"
        assert build_store({"STORE_BACKEND": "memory", "REDIS_URL": "redis://x"}).name == "memory"

    def test_misconfiguration_raises(self):
        with pytest.raises(ValueError):
            build_store({"STORE_BACKEND": "redis"})
        with pytest.raises(ValueError):
            build_store({"STORE_BACKEND": "file"})
        with pytest.raises(ValueError):
            build_store({"STORE_BACKEND": "mongo"})
