import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as template_studio.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "template_studio.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # One session cookie per guard, so an admin login never authenticates the user realm
    ADMIN_COOKIE_NAME = os.getenv("ADMIN_COOKIE_NAME", "template_studio_admin")
    USER_COOKIE_NAME = os.getenv("USER_COOKIE_NAME", "template_studio_session")

    # 8 hours session lifetime, 30 days with "remember me"
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60
    REMEMBER_LIFETIME_SECONDS = 30 * 24 * 60 * 60

    # Idle timeout: 2 hours (not applied to remembered sessions)
    IDLE_TIMEOUT_SECONDS = 2 * 60 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", "false")  # set True when using HTTPS

    # Login throttle: 5 attempts per IP, window re-armed for 5 minutes on every failure
    LOGIN_MAX_ATTEMPTS = int(os.getenv("LOGIN_MAX_ATTEMPTS", "5"))
    LOGIN_DECAY_SECONDS = int(os.getenv("LOGIN_DECAY_SECONDS", "300"))
    THROTTLE_STORE = os.getenv("THROTTLE_STORE", "database")  # database | memory

    # Only honour X-Forwarded-For when running behind a trusted proxy
    TRUST_FORWARDED_FOR = _env_bool("TRUST_FORWARDED_FOR", "false")

    # bcrypt cost factor
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Bootstrap super admin used by `flask seed-admins`
    DEFAULT_ADMIN_NAME = os.getenv("DEFAULT_ADMIN_NAME", "Super Admin")
    DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL")
    DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD")
    DEFAULT_ADMIN_PERMISSIONS = [
        "manage_templates",
        "manage_categories",
        "manage_assets",
        "manage_users",
        "view_analytics",
        "system_settings",
    ]

    # Basic app settings
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "testing-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    THROTTLE_STORE = "memory"
    TRUST_FORWARDED_FOR = False
    BCRYPT_ROUNDS = 4
