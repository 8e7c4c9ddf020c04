"""Request helpers and test doubles shared by the test modules."""

from __future__ import annotations

import pyotp

from config import TestingConfig
from storage import KeyValueStore, StorageUnavailable

BROWSER_UA = "Mozilla/5.0 (pytest-browser)"
ADMIN_EMAIL = TestingConfig.ADMIN_EMAIL
ADMIN_USERNAME = TestingConfig.ADMIN_USERNAME
ADMIN_PASSWORD = TestingConfig.ADMIN_PASSWORD
TOTP_SECRET = TestingConfig.ADMIN_TOTP_SECRET

# ── Helpers ────────────────────────────────────────────────────────────────


def csrf_headers(client) -> dict:
    """Fetch a CSRF token (sets the cookie) and return the matching header."""
    resp = client.get("/api/auth/csrf")
    assert resp.status_code == 200
    return {"x-csrf-token": resp.get_json()["token"]}


def submit_password(client, identifier=ADMIN_EMAIL, password=ADMIN_PASSWORD, headers=None):
    return client.post(
        "/api/auth/login",
        json={"identifier": identifier, "password": password},
        headers=headers if headers is not None else csrf_headers(client),
    )


def current_totp() -> str:
    return pyotp.TOTP(TOTP_SECRET).now()


def log_in(client):
    """Run the password + TOTP flow and return the final response."""
    headers = csrf_headers(client)
    assert submit_password(client, headers=headers).status_code == 200
    resp = client.post("/api/auth/mfa", json={"code": current_totp()}, headers=headers)
    assert resp.status_code == 200
    return resp


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class BrokenStore(KeyValueStore):
    """Store whose every operation reports an outage."""

    name = "broken"

    def get(self, key):
        raise StorageUnavailable("down")

    def set(self, key, value, ex=None):
        raise StorageUnavailable("down")

    def incr(self, key):
        raise StorageUnavailable("down")

    def expire(self, key, seconds):
        raise StorageUnavailable("down")

    def delete(self, key):
        raise StorageUnavailable("down")
