from .auth import auth_bp
from .account import account_bp
from .admin import admin_bp
from .health import health_bp
