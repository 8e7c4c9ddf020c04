from flask import Blueprint, request, jsonify, g

from security.credentials import AccountPatch
from security.csrf import csrf_protected
from security.errors import ValidationError
from security.rate_limit import ACCOUNT_UPDATE, rate_limited
from security.services import get_services
from utils.audit import log_event
from utils.auth_context import login_required

account_bp = Blueprint("account", __name__, url_prefix="/api/admin/account")

MIN_PASSWORD_LENGTH = 8


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _account_json(account):
    return jsonify(
        email=account.email,
        username=account.username,
        totp_enabled=bool(account.totp_secret),
    )


@account_bp.get("")
@login_required
def get_account():
    return _account_json(get_services().credentials.get()), 200


@account_bp.post("")
@rate_limited(ACCOUNT_UPDATE)
@login_required
@csrf_protected
def update_account():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Email and username required")

    email = (data.get("email") or "").strip() if isinstance(data.get("email"), str) else ""
    username = (data.get("username") or "").strip() if isinstance(data.get("username"), str) else ""
    password = data.get("password")

    if not email or not username:
        raise ValidationError("Email and username required")
    if not _is_valid_email(email):
        raise ValidationError("Invalid email")
    if len(username) > 120:
        raise ValidationError("Invalid username")

    password_changed = password not in (None, "")
    patch = AccountPatch(email=email, username=username)
    if password_changed:
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        patch = AccountPatch(email=email, username=username, password=password)

    account = get_services().credentials.update(patch)
    log_event(
        "ACCOUNT_UPDATED",
        actor_email=g.admin_email,
        metadata={"password_changed": password_changed},
    )
    return _account_json(account), 200
