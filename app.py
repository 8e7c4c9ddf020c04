import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import DEFAULT_AUTH_SECRET, AdminDefaults, Config
from models import db
from routes import account_bp, admin_bp, auth_bp, health_bp
from security.credentials import CredentialStore
from security.csrf import CsrfGuard
from security.errors import AuthError
from security.login_flow import LoginFlow
from security.otp import OtpService
from security.password import hash_password, is_bcrypt_hash
from security.pending import PendingLoginSigner
from security.rate_limit import RateLimiter
from security.services import EXTENSION_KEY, AuthServices
from security.session import SessionIssuer
from security.totp import new_totp_secret, provisioning_uri
from storage import build_store
from utils.auth_context import guard_admin_area

logger = logging.getLogger(__name__)


def _harden_config(app: Flask) -> None:
    cfg = app.config
    if cfg.get("ENVIRONMENT") != "production":
        if cfg.get("ALLOW_DEMO_OTP"):
            logger.warning("ALLOW_DEMO_OTP is on: OTP codes are returned in API responses")
        return

    if cfg.get("AUTH_SECRET") in (None, "", DEFAULT_AUTH_SECRET):
        raise RuntimeError("AUTH_SECRET must be set to a strong value in production")
    if cfg.get("ALLOW_DEMO_OTP"):
        logger.warning("Ignoring ALLOW_DEMO_OTP in production")
        cfg["ALLOW_DEMO_OTP"] = False
    if cfg.get("ALLOW_PLAINTEXT_PASSWORD"):
        cfg["ALLOW_PLAINTEXT_PASSWORD"] = False
    cfg["AUTH_COOKIE_SECURE"] = True


def build_services(app: Flask) -> AuthServices:
    cfg = app.config
    store = build_store(cfg)
    defaults = AdminDefaults.from_config(cfg)

    if defaults.password_hash and not is_bcrypt_hash(defaults.password_hash):
        raise RuntimeError("ADMIN_PASSWORD_HASH is not a bcrypt hash")
    if cfg.get("ALLOW_PLAINTEXT_PASSWORD") and defaults.password:
        logger.warning("ALLOW_PLAINTEXT_PASSWORD is on: insecure, development only")

    credentials = CredentialStore(
        store,
        defaults,
        allow_plaintext_fallback=cfg.get("ALLOW_PLAINTEXT_PASSWORD", False),
        bcrypt_rounds=cfg.get("BCRYPT_ROUNDS", 12),
    )
    otp = OtpService(store, ttl_seconds=cfg.get("OTP_TTL_SECONDS", 300))
    sessions = SessionIssuer(cfg["AUTH_SECRET"], ttl_seconds=cfg.get("SESSION_TTL_SECONDS", 86400))
    pending = PendingLoginSigner(cfg["SECRET_KEY"], ttl_seconds=cfg.get("PENDING_LOGIN_TTL_SECONDS", 300))

    return AuthServices(
        store=store,
        admin_defaults=defaults,
        rate_limiter=RateLimiter(store),
        csrf=CsrfGuard(store, ttl_seconds=cfg.get("CSRF_TTL_SECONDS", 3600)),
        credentials=credentials,
        otp=otp,
        sessions=sessions,
        pending=pending,
        login_flow=LoginFlow(credentials, otp, sessions, pending),
    )


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    _harden_config(app)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(account_bp)
    app.register_blueprint(admin_bp)

    # Database init (audit trail, optional sql store)
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    app.extensions[EXTENSION_KEY] = build_services(app)

    @app.before_request
    def _guard_admin():
        return guard_admin_area()

    @app.errorhandler(AuthError)
    def _auth_error(exc):
        return jsonify(error=exc.message), exc.status_code

    @app.errorhandler(Exception)
    def _unhandled(exc):
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("Unhandled error")
        return jsonify(error="Bad Request"), 400

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        resp.headers["Cache-Control"] = "no-store"
        return resp

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("hash-password")
    @click.password_option()
    def hash_password_cmd(password):
        """Print a bcrypt hash for ADMIN_PASSWORD_HASH."""
        click.echo(hash_password(password, rounds=app.config.get("BCRYPT_ROUNDS", 12)))

    @app.cli.command("generate-totp-secret")
    def generate_totp_secret():
        """Print a new TOTP secret and its provisioning URI."""
        secret = new_totp_secret()
        email = app.config.get("ADMIN_EMAIL", "admin@example.com")
        click.echo(f"ADMIN_TOTP_SECRET={secret}")
        click.echo(provisioning_uri(secret, email, app.config.get("TOTP_ISSUER", "CMS Admin")))

    @app.cli.command("reset-admin")
    def reset_admin():
        """Overwrite the stored administrator record with configured defaults."""
        account = app.extensions[EXTENSION_KEY].credentials.initialize()
        click.echo(f"Administrator reset to {account.email} ({account.username})")

#-------------------------


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
