import os
from dataclasses import dataclass
from typing import Optional

from utils.durations import parse_duration

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

# Development-only signing secret; production refuses to start with it
DEFAULT_AUTH_SECRET = "change-me-in-prod"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_str(name: str, default: str) -> str:
    # Blank values fall back to the default, same as an unset variable
    return (os.getenv(name) or "").strip() or default


class Config:
    ENVIRONMENT = _env_str("ENVIRONMENT", "development")

    # Signing key for session tokens. SECRET_KEY signs the pending-login cookie.
    AUTH_SECRET = _env_str("AUTH_SECRET", DEFAULT_AUTH_SECRET)
    SECRET_KEY = _env_str("SECRET_KEY", AUTH_SECRET)

    # SQLite database for the audit trail (and the optional "sql" store)
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "cms_auth.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Key-value store selection: auto | memory | file | redis | sql
    STORE_BACKEND = _env_str("STORE_BACKEND", "auto").lower()
    REDIS_URL = os.getenv("REDIS_URL") or None
    REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2"))
    STORE_FILE_PATH = os.getenv("STORE_FILE_PATH") or None

    # Administrator defaults (used to seed the stored account)
    ADMIN_EMAIL = _env_str("ADMIN_EMAIL", "admin@example.com")
    ADMIN_USERNAME = _env_str("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD") or None
    ADMIN_PASSWORD_HASH = os.getenv("ADMIN_PASSWORD_HASH") or None
    ADMIN_TOTP_SECRET = os.getenv("ADMIN_TOTP_SECRET") or None

    # Dev-only: compare against ADMIN_PASSWORD in plaintext when no hash exists
    ALLOW_PLAINTEXT_PASSWORD = _env_flag("ALLOW_PLAINTEXT_PASSWORD", "true")

    # Dev-only: return the email OTP in the API response
    ALLOW_DEMO_OTP = _env_flag("ALLOW_DEMO_OTP")

    BCRYPT_ROUNDS = 12

    # Session token lifetime; the session cookie uses the same max-age
    SESSION_TTL_SECONDS = parse_duration(_env_str("SESSION_TTL", "1d"))

    PENDING_LOGIN_TTL_SECONDS = 5 * 60
    OTP_TTL_SECONDS = 300
    CSRF_TTL_SECONDS = 60 * 60

    # Cookie names
    SESSION_COOKIE = "cms_session"
    PENDING_COOKIE = "cms_pending"
    CSRF_COOKIE = "csrf_token"

    # Cookie security defaults
    AUTH_COOKIE_SAMESITE = "Lax"
    AUTH_COOKIE_SECURE = ENVIRONMENT == "production"

    # Protected area
    ADMIN_PATH_PREFIX = "/admin"
    ADMIN_LOGIN_PATH = "/admin/login"

    TOTP_ISSUER = _env_str("TOTP_ISSUER", "CMS Admin")

    # Email (SMTP) for OTP delivery
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    ENVIRONMENT = "test"

    AUTH_SECRET = "test-auth-secret"
    SECRET_KEY = "test-secret-key"

    SQLALCHEMY_DATABASE_URI = "sqlite://"
    STORE_BACKEND = "memory"
    REDIS_URL = None
    STORE_FILE_PATH = None

    ADMIN_EMAIL = "admin@example.com"
    ADMIN_USERNAME = "admin"
    ADMIN_PASSWORD = "correct horse battery"
    ADMIN_PASSWORD_HASH = None
    ADMIN_TOTP_SECRET = "JBSWY3DPEHPK3PXPJBSWY3DPEHPK3PXP"

    ALLOW_PLAINTEXT_PASSWORD = False
    ALLOW_DEMO_OTP = True

    # bcrypt minimum cost keeps the suite fast
    BCRYPT_ROUNDS = 4

    SESSION_TTL_SECONDS = 24 * 60 * 60
    AUTH_COOKIE_SECURE = False

    SMTP_HOST = None


@dataclass(frozen=True)
class AdminDefaults:
    """Administrator identity resolved from configuration at startup."""

    email: str
    username: str
    password: Optional[str]
    password_hash: Optional[str]
    totp_secret: Optional[str]

    @classmethod
    def from_config(cls, config) -> "AdminDefaults":
        return cls(
            email=config.get("ADMIN_EMAIL") or "admin@example.com",
            username=config.get("ADMIN_USERNAME") or "admin",
            password=config.get("ADMIN_PASSWORD"),
            password_hash=config.get("ADMIN_PASSWORD_HASH"),
            totp_secret=config.get("ADMIN_TOTP_SECRET"),
        )
