from flask import Blueprint, g, jsonify

from models import db
from models.user import User
from security.csrf import issue_csrf_token
from security.guard import user_guard
from security.login import attempt_login
from security.password import hash_password
from security.results import ThrottleExceeded
from security.throttle import get_throttle
from utils.audit import log_event
from utils.auth_context import login_required
from utils.request_context import client_ip
from utils.validation import errors_by_field, request_payload, validate_login, validate_registration

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _email_taken(email: str) -> bool:
    return User.query.filter_by(email=email).first() is not None


@auth_bp.post("/register")
def register():
    data, errors = validate_registration(request_payload(), _email_taken)
    if errors:
        return jsonify(error="Validation failed", errors=errors_by_field(errors)), 422

    user = User(
        name=data["name"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
    )
    db.session.add(user)
    db.session.commit()
    log_event("USER_REGISTER", realm="user", account_id=user.id)

    return jsonify(message="Registered successfully", user=user.to_dict()), 201


@auth_bp.post("/login")
def login():
    data, errors = validate_login(request_payload())
    if errors:
        return jsonify(error="Validation failed", errors=errors_by_field(errors)), 422

    result = attempt_login(
        user_guard,
        get_throttle(),
        data["email"],
        data["password"],
        client_ip(),
        remember=data["remember"],
        reserve_slot=False,
    )
    if not result.ok:
        log_event("USER_LOGIN_FAIL", realm="user", metadata={"email": data["email"], "reason": result.code})
        body = result.to_dict()
        if isinstance(result, ThrottleExceeded):
            return jsonify(error=result.message, **body), 429, {"Retry-After": str(result.retry_after)}
        return jsonify(error=result.message, **body), 422

    log_event("USER_LOGIN_SUCCESS", realm="user", account_id=result.account.id)
    resp = jsonify(message="Login OK", user=result.account.to_dict())
    return issue_csrf_token(resp), 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(g.user.to_dict()), 200


@auth_bp.post("/logout")
@login_required
def logout():
    user_guard.logout()
    log_event("USER_LOGOUT", realm="user", account_id=g.user.id)

    resp = jsonify(message="Logged out")
    return issue_csrf_token(resp), 200
