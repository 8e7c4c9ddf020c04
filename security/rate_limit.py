import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable

from flask import request

from security.errors import RateLimited
from security.services import get_services
from storage import KeyValueStore, StorageUnavailable
from utils.audit import log_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateBudget:
    action: str
    max_count: int
    window_seconds: int


# Per-route budgets
LOGIN = RateBudget("auth:login", 10, 60)
MFA = RateBudget("auth:mfa", 10, 60)
OTP_REQUEST = RateBudget("auth:otp:req", 5, 300)
OTP_VERIFY = RateBudget("auth:otp:verify", 10, 300)
ACCOUNT_UPDATE = RateBudget("admin:account:update", 10, 300)
CSRF_ISSUE = RateBudget("auth:csrf", 30, 60)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: int  # epoch seconds when the current window closes


class RateLimiter:
    """
    Fixed-window counter. Each window gets its own bucket key
    (key + window index); the first hit sets the bucket's expiry.

    Fails open: if the store is unreachable the request is allowed.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time):
        self.store = store
        self._clock = clock

    def limit(self, key: str, max_count: int, window_seconds: int) -> RateLimitResult:
        now = int(self._clock())
        window = now // window_seconds
        reset_at = (window + 1) * window_seconds
        bucket = f"ratelimit:{key}:{window}"

        try:
            count = self.store.incr(bucket)
            if count == 1:
                self.store.expire(bucket, window_seconds)
        except StorageUnavailable as exc:
            logger.warning("Rate limit store unavailable, allowing %s: %s", key, exc)
            return RateLimitResult(allowed=True, remaining=max_count, reset_at=reset_at)

        return RateLimitResult(
            allowed=count <= max_count,
            remaining=max(0, max_count - count),
            reset_at=reset_at,
        )


def client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    ip = forwarded.split(",")[0].strip()
    return ip or request.headers.get("X-Real-IP") or request.remote_addr or "unknown"


def ip_key(prefix: str) -> str:
    return f"{prefix}:{client_ip()}"


def rate_limited(budget: RateBudget):
    """
    Usage: @rate_limited(LOGIN)
    Runs before any other check on the route, so it also counts
    requests that later fail CSRF validation.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            limiter = get_services().rate_limiter
            result = limiter.limit(ip_key(budget.action), budget.max_count, budget.window_seconds)
            if not result.allowed:
                log_event("RATE_LIMITED", metadata={"action": budget.action})
                raise RateLimited()
            return fn(*args, **kwargs)
        return wrapper
    return decorator
