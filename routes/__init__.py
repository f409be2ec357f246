from .health import health_bp
from .admin_auth import admin_auth_bp
from .admin import admin_bp
from .auth import auth_bp
