from functools import wraps

from flask import flash, g, jsonify, redirect, request, url_for

from security.guard import admin_guard, user_guard
from security.results import DEACTIVATED_MESSAGE
from utils.audit import log_event
from utils.request_context import expects_json


def load_current_accounts():
    """Resolve both guards for this request into ``g.admin`` / ``g.user``."""
    g.cookie_ops = {}
    g.admin, g.admin_rejected = admin_guard.load()
    if g.admin_rejected is not None:
        log_event("ADMIN_SESSION_REVOKED_INACTIVE", realm="admin",
                  metadata={"reason": g.admin_rejected.reason})

    g.user, g.user_rejected = user_guard.load()
    if g.user_rejected is not None:
        log_event("USER_SESSION_REVOKED_INACTIVE", realm="user",
                  metadata={"reason": g.user_rejected.reason})


def admin_required(fn):
    """Admin routes: 401/403 JSON for API callers, redirect to the login page otherwise."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "admin", None) is not None:
            return fn(*args, **kwargs)

        if getattr(g, "admin_rejected", None) is not None:
            if expects_json():
                return jsonify(message="Account deactivated"), 403
            flash(DEACTIVATED_MESSAGE, "error")
            return redirect(url_for("admin_auth.login_form"))

        if expects_json():
            return jsonify(message="Unauthorized"), 401
        return redirect(url_for("admin_auth.login_form", next=request.path))
    return wrapper


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            if getattr(g, "user_rejected", None) is not None:
                return jsonify(error=DEACTIVATED_MESSAGE), 403
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
