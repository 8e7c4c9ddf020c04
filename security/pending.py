from typing import Optional

from flask import current_app
from itsdangerous import BadData, URLSafeTimedSerializer

PENDING_SALT = "cms-pending-login"


class PendingLoginSigner:
    """
    Signs the pending-login cookie (the email that passed the password step)
    so it cannot be forged, and enforces its lifetime on read.
    """

    def __init__(self, secret_key: str, ttl_seconds: int = 300):
        self._serializer = URLSafeTimedSerializer(secret_key, salt=PENDING_SALT)
        self.ttl_seconds = ttl_seconds

    def dumps(self, email: str) -> str:
        return self._serializer.dumps({"email": email})

    def loads(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            data = self._serializer.loads(value, max_age=self.ttl_seconds)
        except BadData:
            # bad signature, expired, or undecodable payload
            return None
        email = data.get("email") if isinstance(data, dict) else None
        return email or None


def set_pending_cookie(resp, value: str):
    cfg = current_app.config
    resp.set_cookie(
        cfg.get("PENDING_COOKIE", "cms_pending"),
        value,
        httponly=True,
        secure=cfg.get("AUTH_COOKIE_SECURE", False),
        samesite=cfg.get("AUTH_COOKIE_SAMESITE", "Lax"),
        max_age=cfg.get("PENDING_LOGIN_TTL_SECONDS", 300),
        path="/",
    )
    return resp


def clear_pending_cookie(resp):
    resp.delete_cookie(current_app.config.get("PENDING_COOKIE", "cms_pending"), path="/")
    return resp
