import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

logger = logging.getLogger(__name__)


def smtp_configured() -> bool:
    cfg = current_app.config
    return bool(cfg.get("SMTP_HOST") and (cfg.get("SMTP_FROM_EMAIL") or cfg.get("SMTP_USERNAME")))


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("SMTP delivery to %s failed: %s", to_email, exc)
        return False, str(exc)


def send_otp_email(to_email: str, code: str, ttl_seconds: int = 300):
    """
    Deliver a login code. Without SMTP outside production the code is
    written to the log so local logins still work.
    """
    if not smtp_configured():
        if current_app.config.get("ENVIRONMENT") == "production":
            return False, "Email not configured"
        logger.info("[console email] login code for %s: %s", to_email, code)
        return True, None

    minutes = max(1, ttl_seconds // 60)
    body = (
        f"Your admin login code is {code}.\n\n"
        f"It expires in {minutes} minutes and can be used once. "
        "If you did not request it, someone may be trying to sign in to your account."
    )
    return send_email(to_email, "Your admin login code", body)
