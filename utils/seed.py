from models import db
from models.admin import Admin, SUPER_ADMIN
from security.password import hash_password


def create_admin(email: str, name: str, password: str, role: str = "admin",
                 permissions=None, is_active: bool = True) -> Admin:
    admin = Admin(
        name=name,
        email=email.strip().lower(),
        password_hash=hash_password(password),
        role=role,
        is_active=is_active,
        permissions=list(permissions or []),
    )
    db.session.add(admin)
    db.session.commit()
    return admin


def seed_default_admin(config) -> Admin:
    """Create the bootstrap super admin from config if it is missing (idempotent)."""
    email = config.get("DEFAULT_ADMIN_EMAIL")
    password = config.get("DEFAULT_ADMIN_PASSWORD")
    if not email or not password:
        return None

    existing = Admin.query.filter_by(email=email.strip().lower()).first()
    if existing:
        return existing

    return create_admin(
        email,
        config.get("DEFAULT_ADMIN_NAME", "Super Admin"),
        password,
        role=SUPER_ADMIN,
        permissions=config.get("DEFAULT_ADMIN_PERMISSIONS", []),
    )
