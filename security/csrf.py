import hmac
import logging
import secrets
import string
from functools import wraps

from flask import request, current_app

from security.errors import CsrfRejected
from security.services import get_services
from storage import KeyValueStore, StorageUnavailable
from utils.audit import log_event

logger = logging.getLogger(__name__)

CSRF_HEADER = "x-csrf-token"
TOKEN_LENGTH = 48
_ALPHABET = string.ascii_letters + string.digits


def generate_csrf_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


class CsrfGuard:
    """
    Issues anti-forgery tokens and checks that the request header echoes
    the value held in the HTTP-only cookie. Issued tokens are also
    registered in the store for their lifetime.
    """

    def __init__(self, store: KeyValueStore, ttl_seconds: int = 3600):
        self.store = store
        self.ttl_seconds = ttl_seconds

    def _store_key(self, token: str) -> str:
        return f"csrf:{token}"

    def issue(self) -> str:
        token = generate_csrf_token()
        try:
            self.store.set(self._store_key(token), "1", ex=self.ttl_seconds)
        except StorageUnavailable as exc:
            logger.warning("CSRF store unavailable, token not registered: %s", exc)
        return token

    def validate(self, header_token, cookie_token) -> bool:
        if not header_token or not cookie_token:
            return False
        if not hmac.compare_digest(header_token.encode("utf-8"), cookie_token.encode("utf-8")):
            return False
        try:
            return self.store.get(self._store_key(cookie_token)) is not None
        except StorageUnavailable as exc:
            # cookie/header equality still holds
            logger.warning("CSRF store unavailable, falling back to cookie check: %s", exc)
            return True


def set_csrf_cookie(resp, token: str):
    cfg = current_app.config
    resp.set_cookie(
        cfg.get("CSRF_COOKIE", "csrf_token"),
        token,
        httponly=True,
        secure=cfg.get("AUTH_COOKIE_SECURE", False),
        samesite=cfg.get("AUTH_COOKIE_SAMESITE", "Lax"),
        max_age=cfg.get("CSRF_TTL_SECONDS", 3600),
        path="/",
    )
    return resp


def require_csrf() -> None:
    cookie_token = request.cookies.get(current_app.config.get("CSRF_COOKIE", "csrf_token"))
    header_token = request.headers.get(CSRF_HEADER)
    if not get_services().csrf.validate(header_token, cookie_token):
        log_event("CSRF_REJECTED", metadata={"path": request.path})
        raise CsrfRejected()


def csrf_protected(fn):
    """Reject the request with 403 unless the CSRF header matches the cookie."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        require_csrf()
        return fn(*args, **kwargs)
    return wrapper
