from models.db import db
from utils.clock import utcnow

SUPER_ADMIN = "super_admin"
ADMIN = "admin"


class Admin(db.Model):
    __tablename__ = "admins"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(50), default=ADMIN, nullable=False)  # admin | super_admin
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    permissions = db.Column(db.JSON, default=list, nullable=False)

    last_login_at = db.Column(db.DateTime, nullable=True)
    last_login_ip = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN

    def has_permission(self, permission: str) -> bool:
        if self.is_super_admin:
            return True
        return permission in (self.permissions or [])

    def update_last_login(self, ip: str):
        self.last_login_at = utcnow()
        self.last_login_ip = ip

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_active": self.is_active,
            "permissions": list(self.permissions or []),
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
            "last_login_ip": self.last_login_ip,
        }
