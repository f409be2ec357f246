import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from models import db
from models.session import Session
from utils.clock import utcnow
from utils.request_context import client_ip, user_agent


def _hash_token(token: str) -> str:
    # SHA-256 is fine for hashing random session tokens
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def session_lifetime(remember: bool) -> int:
    if remember:
        return current_app.config.get("REMEMBER_LIFETIME_SECONDS", 30 * 24 * 60 * 60)
    return current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)


def create_session(realm: str, account_id: int, remember: bool = False):
    """
    Creates a server-side session and returns (raw_token, row).
    Only the hash is stored in DB; the raw token goes into the realm's cookie.
    """
    raw_token = secrets.token_urlsafe(32)

    row = Session(
        realm=realm,
        account_id=account_id,
        token_hash=_hash_token(raw_token),
        expires_at=utcnow() + timedelta(seconds=session_lifetime(remember)),
        remember=remember,
        ip=client_ip(),
        user_agent=user_agent(),
    )
    db.session.add(row)
    db.session.commit()
    return raw_token, row


def find_session(realm: str, raw_token: str):
    if not raw_token:
        return None

    now = utcnow()
    sess = (
        Session.query
        .filter_by(token_hash=_hash_token(raw_token), realm=realm, revoked=False)
        .first()
    )
    if not sess:
        return None

    # Absolute expiry
    if sess.expires_at <= now:
        return None

    # Idle timeout (remembered sessions only expire absolutely)
    if not sess.remember:
        idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 7200)
        last_seen = sess.last_seen_at or sess.created_at
        if (last_seen + timedelta(seconds=idle_seconds)) <= now:
            return None

    # Update activity timestamp (touch)
    sess.last_seen_at = now
    db.session.commit()

    return sess


def revoke(sess: Session):
    sess.revoked = True
    db.session.commit()



def revoke_token(realm: str, raw_token: str) -> bool:
    if not raw_token:
        return False
    sess = Session.query.filter_by(token_hash=_hash_token(raw_token), realm=realm).first()
    if not sess:
        return False
    revoke(sess)
    return True


def revoke_all_sessions(realm: str, account_id: int) -> int:
    sessions = Session.query.filter_by(realm=realm, account_id=account_id, revoked=False).all()
    for s in sessions:
        s.revoked = True
    db.session.commit()
    return len(sessions)
