from flask import Blueprint, jsonify

from security.services import get_services

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    return jsonify(status="ok", store=get_services().store.name), 200
