from flask import Blueprint, request, jsonify, current_app

from security.csrf import csrf_protected, set_csrf_cookie
from security.errors import InvalidCode, InvalidCredentials, NoPendingLogin, ValidationError
from security.pending import clear_pending_cookie, set_pending_cookie
from security.rate_limit import CSRF_ISSUE, LOGIN, MFA, OTP_REQUEST, OTP_VERIFY, rate_limited
from security.services import get_services
from security.session import clear_session_cookie, set_session_cookie
from utils.audit import log_event
from utils.emailer import send_otp_email


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _text_field(data: dict, *names: str) -> str:
    for name in names:
        value = data.get(name)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _user_agent() -> str:
    return request.headers.get("User-Agent", "")


def _session_response(issued):
    resp = jsonify(ok=True)
    set_session_cookie(resp, issued.token)
    clear_pending_cookie(resp)
    return resp


@auth_bp.get("/csrf")
@rate_limited(CSRF_ISSUE)
def csrf_token():
    token = get_services().csrf.issue()
    resp = jsonify(token=token)
    set_csrf_cookie(resp, token)
    return resp, 200


@auth_bp.post("/login")
@rate_limited(LOGIN)
@csrf_protected
def login():
    data = _json_body()
    identifier = _text_field(data, "identifier", "emailOrUsername")
    password = data.get("password") if isinstance(data.get("password"), str) else ""

    try:
        pending = get_services().login_flow.submit_password(identifier, password)
    except InvalidCredentials:
        log_event("LOGIN_FAIL", metadata={"identifier": identifier[:255]})
        raise

    log_event("LOGIN_PASSWORD_OK", actor_email=pending.email)
    resp = jsonify(ok=True)
    set_pending_cookie(resp, pending.marker)
    return resp, 200


@auth_bp.post("/mfa")
@rate_limited(MFA)
@csrf_protected
def mfa():
    data = _json_body()
    code = _text_field(data, "code")
    marker = request.cookies.get(current_app.config.get("PENDING_COOKIE", "cms_pending"))

    try:
        issued = get_services().login_flow.submit_totp(marker, code, _user_agent())
    except NoPendingLogin:
        log_event("MFA_NO_PENDING")
        raise
    except InvalidCode:
        log_event("MFA_FAIL")
        raise

    log_event("MFA_OK", actor_email=issued.email)
    return _session_response(issued), 200


@auth_bp.post("/otp/request")
@rate_limited(OTP_REQUEST)
@csrf_protected
def otp_request():
    data = _json_body()
    destination = data.get("destination")

    dispatch = get_services().login_flow.request_otp(destination)
    log_event("OTP_REQUESTED", actor_email=dispatch.email, metadata={"destination": destination})

    sent, error = send_otp_email(
        dispatch.email,
        dispatch.code,
        ttl_seconds=current_app.config.get("OTP_TTL_SECONDS", 300),
    )
    if not sent:
        log_event("OTP_DISPATCH_FAIL", actor_email=dispatch.email, metadata={"error": error})

    if current_app.config.get("ALLOW_DEMO_OTP"):
        return jsonify(ok=True, code=dispatch.code), 200
    return jsonify(ok=True), 200


@auth_bp.post("/otp/verify")
@rate_limited(OTP_VERIFY)
@csrf_protected
def otp_verify():
    data = _json_body()
    code = _text_field(data, "code")

    try:
        issued = get_services().login_flow.verify_otp(code, _user_agent())
    except InvalidCode:
        log_event("OTP_FAIL")
        raise

    log_event("OTP_OK", actor_email=issued.email)
    return _session_response(issued), 200


@auth_bp.post("/logout")
def logout():
    log_event("LOGOUT")
    resp = jsonify(ok=True)
    clear_session_cookie(resp)
    clear_pending_cookie(resp)
    return resp, 200
