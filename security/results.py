"""Outcomes of a login attempt.

A login returns either ``LoginSuccess`` or one of the ``LoginError``
subclasses; nothing in the login path raises to signal a rejection.
Every error is tied to a form field so routes can render it next to the
input that caused it.
"""
from dataclasses import dataclass
from typing import Any, Optional

THROTTLE_MESSAGE = "Too many login attempts. Please try again in {seconds} seconds."
INVALID_CREDENTIALS_MESSAGE = "The provided credentials do not match our records."
DEACTIVATED_MESSAGE = "Your account has been deactivated."


@dataclass(frozen=True)
class LoginSuccess:
    account: Any
    token: str
    remember: bool = False

    ok = True


@dataclass(frozen=True)
class LoginError:
    field = "email"
    ok = False
    code = "login_error"

    @property
    def message(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class ThrottleExceeded(LoginError):
    retry_after: int = 0
    code = "throttled"

    @property
    def message(self) -> str:
        return THROTTLE_MESSAGE.format(seconds=self.retry_after)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retry_after_seconds"] = self.retry_after
        return data


@dataclass(frozen=True)
class InvalidCredentials(LoginError):
    # unknown email and wrong password are deliberately the same value
    code = "invalid_credentials"

    @property
    def message(self) -> str:
        return INVALID_CREDENTIALS_MESSAGE


@dataclass(frozen=True)
class AccountDeactivated(LoginError):
    code = "deactivated"

    @property
    def message(self) -> str:
        return DEACTIVATED_MESSAGE


@dataclass(frozen=True)
class ValidationFailed(LoginError):
    field: str = "email"
    rule: str = ""
    detail: Optional[str] = None
    code = "validation_failed"

    @property
    def message(self) -> str:
        return self.detail or "The %s field is invalid." % self.field
