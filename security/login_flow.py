"""
Login state machine for the administrator.

    Anonymous --password--> PasswordVerified (pending) --TOTP--> Authenticated
    Anonymous --request OTP--> OtpRequested --verify OTP--> Authenticated

A session is only ever minted after a TOTP check on a pending login or
after a valid email OTP, never from the password step alone. The
Authenticated state is the session cookie itself; there is no server-side
session record. HTTP concerns (cookies, rate limits, CSRF) stay in the
route layer; this module only decides transitions.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from security.credentials import CredentialStore
from security.errors import InvalidCode, InvalidCredentials, NoPendingLogin, ValidationError
from security.otp import OtpService
from security.pending import PendingLoginSigner
from security.session import SessionIssuer, session_subject
from security.totp import verify_totp

logger = logging.getLogger(__name__)

SUPPORTED_OTP_DESTINATIONS = ("email",)


@dataclass(frozen=True)
class PendingLogin:
    email: str
    marker: str  # signed cookie value


@dataclass(frozen=True)
class IssuedSession:
    email: str
    token: str


@dataclass(frozen=True)
class OtpDispatch:
    email: str
    code: str


class LoginFlow:
    def __init__(
        self,
        credentials: CredentialStore,
        otp: OtpService,
        sessions: SessionIssuer,
        pending: PendingLoginSigner,
    ):
        self.credentials = credentials
        self.otp = otp
        self.sessions = sessions
        self.pending = pending

    def submit_password(self, identifier: str, password: str) -> PendingLogin:
        if not identifier or not password:
            raise ValidationError("Identifier and password required")

        check = self.credentials.verify_password(identifier, password)
        if not check.ok:
            raise InvalidCredentials()
        return PendingLogin(email=check.email, marker=self.pending.dumps(check.email))

    def submit_totp(self, pending_marker: Optional[str], code: str, user_agent: str) -> IssuedSession:
        if not code:
            raise ValidationError("Code required")

        email = self.pending.loads(pending_marker)
        if not email:
            raise NoPendingLogin()

        account = self.credentials.get()
        if not verify_totp(account.totp_secret, code):
            # pending marker stays valid for a retry
            raise InvalidCode()

        return self._issue(email, user_agent)

    def request_otp(self, destination: str) -> OtpDispatch:
        if destination not in SUPPORTED_OTP_DESTINATIONS:
            raise ValidationError("Only email OTP supported")

        code = self.otp.issue()
        return OtpDispatch(email=self.credentials.get().email, code=code)

    def verify_otp(self, code: str, user_agent: str) -> IssuedSession:
        if not code:
            raise ValidationError("Code required")

        if not self.otp.consume(code):
            raise InvalidCode()

        return self._issue(self.credentials.get().email, user_agent)

    def _issue(self, email: str, user_agent: str) -> IssuedSession:
        token = self.sessions.mint(session_subject(email, user_agent))
        return IssuedSession(email=email, token=token)
