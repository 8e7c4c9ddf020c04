from functools import wraps
from typing import Optional

from flask import current_app, g, redirect, request

from security.errors import Unauthorized
from security.services import get_services
from security.session import subject_matches_agent


def current_admin_email() -> Optional[str]:
    """
    Email of the administrator bound to this request's session cookie,
    or None. The token must verify and its subject must end with the
    current request's user agent.
    """
    token = request.cookies.get(current_app.config.get("SESSION_COOKIE", "cms_session"))
    if not token:
        return None

    session = get_services().sessions.verify(token)
    if session is None:
        return None

    user_agent = request.headers.get("User-Agent", "")
    if not subject_matches_agent(session.subject, user_agent):
        return None
    return session.email


def guard_admin_area():
    """before_request hook: send unauthenticated visitors of /admin to the login page."""
    cfg = current_app.config
    prefix = cfg.get("ADMIN_PATH_PREFIX", "/admin")
    login_path = cfg.get("ADMIN_LOGIN_PATH", "/admin/login")

    path = request.path
    if not (path == prefix or path.startswith(prefix + "/")):
        return None
    if path == login_path or path.startswith(login_path + "/"):
        return None

    email = current_admin_email()
    if email is None:
        return redirect(login_path)
    g.admin_email = email
    return None


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        email = current_admin_email()
        if email is None:
            raise Unauthorized()
        g.admin_email = email
        return fn(*args, **kwargs)
    return wrapper
