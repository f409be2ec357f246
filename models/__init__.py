from .db import db
from .admin import Admin
from .user import User
from .session import Session
from .login_attempt import LoginAttempt
from .audit_log import AuditLog
