from dataclasses import dataclass
from typing import TYPE_CHECKING

from flask import current_app

if TYPE_CHECKING:
    from config import AdminDefaults
    from security.credentials import CredentialStore
    from security.csrf import CsrfGuard
    from security.login_flow import LoginFlow
    from security.otp import OtpService
    from security.pending import PendingLoginSigner
    from security.rate_limit import RateLimiter
    from security.session import SessionIssuer
    from storage import KeyValueStore

EXTENSION_KEY = "cms_auth"


@dataclass
class AuthServices:
    """Everything the auth routes need, constructed once per app."""

    store: "KeyValueStore"
    admin_defaults: "AdminDefaults"
    rate_limiter: "RateLimiter"
    csrf: "CsrfGuard"
    credentials: "CredentialStore"
    otp: "OtpService"
    sessions: "SessionIssuer"
    pending: "PendingLoginSigner"
    login_flow: "LoginFlow"


def get_services() -> AuthServices:
    return current_app.extensions[EXTENSION_KEY]
