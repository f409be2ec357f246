import json

from models import db
from models.audit_log import AuditLog
from utils.request_context import client_ip, user_agent


def log_event(action: str, realm=None, account_id=None, metadata=None):
    row = AuditLog(
        realm=realm,
        account_id=account_id,
        action=action,
        ip=client_ip(),
        user_agent=user_agent() or None,
        metadata_json=json.dumps(metadata) if metadata else None
    )
    db.session.add(row)
    db.session.commit()
