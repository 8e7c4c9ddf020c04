import json
import logging

from flask import request
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def log_event(action: str, actor_email=None, metadata=None):
    """
    Persist a security audit event. A failed write is logged and
    swallowed so it never changes the outcome of the request.
    """
    ip = request.headers.get("X-Forwarded-For", request.remote_addr)
    user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        action=action,
        actor_email=actor_email,
        ip=ip[:64] if ip else None,
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata) if metadata else None
    )
    try:
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Audit write failed for %s: %s", action, exc)
