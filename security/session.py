import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from flask import current_app

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
SUBJECT_SEPARATOR = "::"


@dataclass(frozen=True)
class VerifiedSession:
    subject: str

    @property
    def email(self) -> str:
        return self.subject.split(SUBJECT_SEPARATOR, 1)[0]


def session_subject(email: str, user_agent: str) -> str:
    return f"{email}{SUBJECT_SEPARATOR}{user_agent or ''}"


def subject_matches_agent(subject: str, user_agent: str) -> bool:
    return SUBJECT_SEPARATOR in subject and subject.endswith(f"{SUBJECT_SEPARATOR}{user_agent or ''}")


class SessionIssuer:
    """
    Mints and verifies HS256-signed session tokens. There is no server-side
    session table; a token stays valid until it expires or the secret rotates.
    """

    def __init__(self, secret: str, ttl_seconds: int = 86400):
        if not secret:
            raise ValueError("Session signing secret must not be empty")
        self._secret = secret
        self.ttl_seconds = ttl_seconds

    def mint(self, subject: str, ttl_seconds: Optional[int] = None) -> str:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("Session ttl must be positive")
        now = datetime.now(timezone.utc)
        payload = {
            "sub": subject,
            "iat": now,
            "exp": now + timedelta(seconds=ttl),
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def verify(self, token: Optional[str]) -> Optional[VerifiedSession]:
        """Signature + expiry only. Returns None on any failure."""
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError:
            return None
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            return None
        return VerifiedSession(subject=subject)


def set_session_cookie(resp, token: str):
    cfg = current_app.config
    resp.set_cookie(
        cfg.get("SESSION_COOKIE", "cms_session"),
        token,
        httponly=True,
        secure=cfg.get("AUTH_COOKIE_SECURE", False),
        samesite=cfg.get("AUTH_COOKIE_SAMESITE", "Lax"),
        max_age=cfg.get("SESSION_TTL_SECONDS", 86400),
        path="/",
    )
    return resp


def clear_session_cookie(resp):
    resp.delete_cookie(current_app.config.get("SESSION_COOKIE", "cms_session"), path="/")
    return resp
