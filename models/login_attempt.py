from models.db import db


class LoginAttempt(db.Model):
    """Throttle counter row, one per throttle key (e.g. ``admin-login:<ip>``)."""

    __tablename__ = "login_attempts"

    id = db.Column(db.Integer, primary_key=True)

    key = db.Column(db.String(255), unique=True, nullable=False, index=True)
    count = db.Column(db.Integer, default=0, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
