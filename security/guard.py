"""Authentication guards.

A guard is a named realm ("admin", "user") with its own account table,
session cookie and throttle prefix. Sessions are server-side rows in
``sessions`` tagged with the realm, so a token minted for one guard is
never accepted by the other.
"""
from contextlib import contextmanager

from flask import current_app, g, request

from models import db
from models.admin import Admin
from models.user import User
from security.account_state import admit
from security.password import burn_verify, verify_password
from security.session import (
    create_session, find_session, revoke, revoke_all_sessions, revoke_token, session_lifetime,
)
from security.throttle import ADMIN_PREFIX, USER_PREFIX


class PendingLogin:
    """Session created before the account-state gate has run.

    Unless ``establish`` is called the session is revoked when the
    ``pending_login`` block exits, whichever way it exits.
    """

    def __init__(self, guard, token, session):
        self.guard = guard
        self.token = token
        self.session = session
        self.established = False

    def establish(self):
        db.session.commit()
        self.established = True
        self.guard.queue_cookie(self.token, self.session.remember)


class AuthGuard:
    def __init__(self, realm: str, model, cookie_setting: str, throttle_prefix: str):
        self.realm = realm
        self.model = model
        self.cookie_setting = cookie_setting
        self.throttle_prefix = throttle_prefix

    def __repr__(self):
        return "<AuthGuard %s>" % self.realm

    @property
    def cookie_name(self) -> str:
        return current_app.config[self.cookie_setting]

    # -- credential verifier -------------------------------------------------

    def find_by_email(self, email: str):
        return self.model.query.filter_by(email=email).first()

    def verify(self, email: str, password: str):
        """Return the account when ``email`` exists and ``password`` matches it.

        Lookup is an exact match on the stored email. A miss still pays for
        one bcrypt comparison.
        """
        account = self.find_by_email(email) if email else None
        if account is None:
            burn_verify(password)
            return None
        if not verify_password(password, account.password_hash):
            return None
        return account

    # -- sessions -------------------------------------------------------------

    def _raw_token(self):
        return request.cookies.get(self.cookie_name)

    @contextmanager
    def pending_login(self, account, remember: bool = False):
        # regenerate: the pre-login token (if any) never survives a login
        revoke_token(self.realm, self._raw_token())

        token, sess = create_session(self.realm, account.id, remember=remember)
        pending = PendingLogin(self, token, sess)
        try:
            yield pending
        finally:
            if not pending.established:
                db.session.rollback()
                revoke(sess)

    def load(self):
        """Resolve the request's session for this realm.

        Returns (account, rejected). Sessions of accounts that fail the
        account-state gate are revoked here, so deactivation takes effect on
        the very next request.
        """
        sess = find_session(self.realm, self._raw_token())
        if sess is None:
            return None, None

        account = db.session.get(self.model, sess.account_id)
        if account is None:
            revoke(sess)
            self.forget_cookie()
            return None, None

        decision = admit(account)
        if not decision.ok:
            revoke_all_sessions(self.realm, account.id)
            self.forget_cookie()
            return None, decision
        return account, None

    def logout(self) -> bool:
        revoked = revoke_token(self.realm, self._raw_token())
        self.forget_cookie()
        return revoked

    # -- cookies ----------------------------------------------------------------

    def _cookie_ops(self) -> dict:
        if "cookie_ops" not in g:
            g.cookie_ops = {}
        return g.cookie_ops

    def queue_cookie(self, token: str, remember: bool):
        self._cookie_ops()[self.realm] = (token, remember)

    def forget_cookie(self):
        self._cookie_ops()[self.realm] = None

    def apply_cookie(self, resp):
        ops = g.get("cookie_ops") or {}
        if self.realm not in ops:
            return resp

        op = ops[self.realm]
        if op is None:
            resp.delete_cookie(self.cookie_name, path="/")
            return resp

        token, remember = op
        resp.set_cookie(
            self.cookie_name,
            token,
            httponly=True,
            secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
            samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
            # without "remember" the cookie dies with the browser session
            max_age=session_lifetime(True) if remember else None,
            path="/",
        )
        return resp


admin_guard = AuthGuard("admin", Admin, "ADMIN_COOKIE_NAME", ADMIN_PREFIX)
user_guard = AuthGuard("user", User, "USER_COOKIE_NAME", USER_PREFIX)

GUARDS = {guard.realm: guard for guard in (admin_guard, user_guard)}


def get_guard(realm: str) -> AuthGuard:
    try:
        return GUARDS[realm]
    except KeyError:
        raise ValueError("Unknown guard %r" % realm) from None
