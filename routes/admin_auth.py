from flask import Blueprint, flash, g, get_flashed_messages, jsonify, redirect, request, url_for

from security.csrf import issue_csrf_token
from security.guard import admin_guard
from security.login import attempt_login
from security.results import ThrottleExceeded
from security.throttle import get_throttle
from utils.audit import log_event
from utils.request_context import client_ip, expects_json
from utils.validation import errors_by_field, request_payload, validate_login

admin_auth_bp = Blueprint("admin_auth", __name__, url_prefix="/admin")

LOGIN_PAGE = "admin/auth/login"
STATUS_CATEGORIES = ("success", "error")

_AUDIT_ACTIONS = {
    "throttled": "ADMIN_LOGIN_THROTTLED",
    "invalid_credentials": "ADMIN_LOGIN_FAIL",
    "deactivated": "ADMIN_LOGIN_DEACTIVATED",
}


def _safe_next(target) -> str:
    # only local admin pages; anything else falls back to the dashboard
    if (
        isinstance(target, str)
        and target.startswith("/admin/")
        and not target.startswith("//")
        and "\\" not in target
        and target not in ("/admin/login", "/admin/logout")
    ):
        return target
    return url_for("admin.dashboard")


def _reject(errors, next_url):
    first = errors[0]
    if expects_json():
        body = first.to_dict()
        body["errors"] = errors_by_field(errors)
        if isinstance(first, ThrottleExceeded):
            resp = jsonify(body)
            resp.headers["Retry-After"] = str(first.retry_after)
            return resp, 429
        return jsonify(body), 422

    for field, message in errors_by_field(errors).items():
        flash(message, field)
    return redirect(url_for("admin_auth.login_form", next=next_url))


@admin_auth_bp.get("/login")
def login_form():
    if g.admin is not None:
        return redirect(url_for("admin.dashboard"))

    errors = {}
    status = {}
    for category, message in get_flashed_messages(with_categories=True):
        if category in STATUS_CATEGORIES:
            status[category] = message
        else:
            errors.setdefault(category, message)

    return jsonify(
        page=LOGIN_PAGE,
        props={
            "errors": errors,
            "success": status.get("success"),
            "error": status.get("error"),
            "next": _safe_next(request.args.get("next")),
        },
    ), 200


@admin_auth_bp.post("/login")
def login():
    payload = request_payload()
    next_url = _safe_next(request.args.get("next") or payload.get("next"))

    data, errors = validate_login(payload)
    if errors:
        return _reject(errors, next_url)

    result = attempt_login(
        admin_guard,
        get_throttle(),
        data["email"],
        data["password"],
        client_ip(),
        remember=data["remember"],
    )
    if not result.ok:
        log_event(
            _AUDIT_ACTIONS.get(result.code, "ADMIN_LOGIN_FAIL"),
            realm="admin",
            metadata={"email": data["email"], "reason": result.code},
        )
        return _reject([result], next_url)

    log_event("ADMIN_LOGIN_SUCCESS", realm="admin", account_id=result.account.id,
              metadata={"remember": result.remember})

    message = "Welcome back! You have been logged in successfully."
    if expects_json():
        resp = jsonify(message=message, redirect=next_url, admin=result.account.to_dict())
    else:
        flash(message, "success")
        resp = redirect(next_url)
    return issue_csrf_token(resp)


@admin_auth_bp.post("/logout")
def logout():
    admin = g.admin
    admin_guard.logout()
    if admin is not None:
        log_event("ADMIN_LOGOUT", realm="admin", account_id=admin.id)

    message = "You have been logged out successfully."
    if expects_json():
        resp = jsonify(message=message, redirect=url_for("admin_auth.login_form"))
    else:
        flash(message, "success")
        resp = redirect(url_for("admin_auth.login_form"))
    return issue_csrf_token(resp)
