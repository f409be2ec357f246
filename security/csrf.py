import hmac
import secrets

from flask import current_app, jsonify, request

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
CSRF_FORM_FIELD = "_token"

# endpoints that bootstrap a session and so cannot carry a token yet
CSRF_EXEMPT_PATHS = {
    "/admin/login",
    "/auth/login",
    "/auth/register",
    "/health",
}


def issue_csrf_token(resp):
    """Set a fresh token; called on login and again on logout to rotate it."""
    token = secrets.token_urlsafe(32)
    resp.set_cookie(
        CSRF_COOKIE,
        token,
        httponly=False,  # must be readable by client JS
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp


def require_csrf():
    cookie_token = request.cookies.get(CSRF_COOKIE)
    sent_token = request.headers.get(CSRF_HEADER) or request.form.get(CSRF_FORM_FIELD)
    if not cookie_token or not sent_token or not hmac.compare_digest(cookie_token, sent_token):
        return jsonify(error="CSRF validation failed"), 403
    return None
