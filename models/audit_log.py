from models.db import db
from utils.clock import utcnow


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    realm = db.Column(db.String(20), nullable=True)     # admin | user
    account_id = db.Column(db.Integer, nullable=True)   # nullable for unauth events
    action = db.Column(db.String(80), nullable=False)   # e.g. ADMIN_LOGIN_FAIL, USER_REGISTER

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False)
