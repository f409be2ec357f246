"""Form-shape validation for the login and registration payloads.

Each validator returns ``(cleaned, errors)`` where ``errors`` is a list of
``ValidationFailed`` in field order; callers report the first error per field.
"""
import re

from flask import request

from security.password_policy import validate_password
from security.results import ValidationFailed

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_NAME = re.compile(r"^[a-zA-Z\s'-]+$")

_TRUE = {True, 1, "1", "true", "on", "yes"}
_FALSE = {False, 0, "0", "false", "off", "no", "", None}

BCRYPT_MAX_BYTES = 72


def request_payload() -> dict:
    """JSON body for API callers, form fields for classic form posts."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _as_bool(value):
    if value is not None and not isinstance(value, (bool, int, str)):
        return None
    if isinstance(value, str):
        value = value.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return None


def _clean_email(raw, errors):
    if not isinstance(raw, str) or not raw.strip():
        errors.append(ValidationFailed("email", "required", "Email address is required."))
        return ""
    email = raw.strip().lower()
    if len(email) > 255:
        errors.append(ValidationFailed("email", "max", "Email address cannot exceed 255 characters."))
    elif not _EMAIL.match(email):
        errors.append(ValidationFailed("email", "email", "Please enter a valid email address."))
    return email


def validate_login(data: dict):
    errors = []
    email = _clean_email(data.get("email"), errors)

    password = data.get("password")
    if not isinstance(password, str) or password == "":
        errors.append(ValidationFailed("password", "required", "Password is required."))
        password = ""

    remember = _as_bool(data.get("remember", False))
    if remember is None:
        errors.append(ValidationFailed("remember", "boolean", "Remember me must be true or false."))
        remember = False

    return {"email": email, "password": password, "remember": remember}, errors


def validate_registration(data: dict, email_taken):
    """``email_taken`` is a callable that reports whether an email is already registered."""
    errors = []

    name = data.get("name")
    name = name.strip() if isinstance(name, str) else ""
    if not name:
        errors.append(ValidationFailed("name", "required", "Your name is required."))
    elif len(name) < 2:
        errors.append(ValidationFailed("name", "min", "Your name must be at least 2 characters long."))
    elif len(name) > 255:
        errors.append(ValidationFailed("name", "max", "Your name cannot exceed 255 characters."))
    elif not _NAME.match(name):
        errors.append(ValidationFailed(
            "name", "regex", "Your name can only contain letters, spaces, hyphens, and apostrophes."))

    email = _clean_email(data.get("email"), errors)
    if email and not any(e.field == "email" for e in errors) and email_taken(email):
        errors.append(ValidationFailed("email", "unique", "This email address is already registered."))

    password = data.get("password")
    if not isinstance(password, str) or password == "":
        errors.append(ValidationFailed("password", "required", "A password is required."))
    elif password != data.get("password_confirmation"):
        errors.append(ValidationFailed("password", "confirmed", "Password confirmation does not match."))
    else:
        valid, rule, message = validate_password(password)
        if not valid:
            errors.append(ValidationFailed("password", rule.value, message))
        elif len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            errors.append(ValidationFailed(
                "password", "max", "Password cannot exceed %d bytes." % BCRYPT_MAX_BYTES))
        elif email and email in password.lower():
            errors.append(ValidationFailed("password", "contains_email", "Password cannot contain your email address."))

    if _as_bool(data.get("terms")) is not True:
        errors.append(ValidationFailed("terms", "accepted", "You must accept the terms and conditions."))

    return {"name": name, "email": email, "password": password or ""}, errors


def errors_by_field(errors) -> dict:
    out = {}
    for err in errors:
        out.setdefault(err.field, err.message)
    return out
