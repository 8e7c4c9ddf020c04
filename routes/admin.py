from flask import Blueprint, jsonify, g

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


# Guarded by utils.auth_context.guard_admin_area, registered in create_app
@admin_bp.get("")
@admin_bp.get("/")
def dashboard():
    return jsonify(message="Welcome to the CMS admin area", email=g.admin_email), 200


@admin_bp.get("/login")
def login_page():
    # The login form itself is rendered by the frontend
    return jsonify(
        message="Sign in required",
        csrf_url="/api/auth/csrf",
        login_url="/api/auth/login",
    ), 200
