from functools import lru_cache

import bcrypt
from flask import current_app

DEFAULT_ROUNDS = 12


def _rounds() -> int:
    try:
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_ROUNDS))
    except RuntimeError:  # outside an app context
        return DEFAULT_ROUNDS


def hash_password(plain_password: str, rounds: int = None) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    # bcrypt expects bytes
    salt = bcrypt.gensalt(rounds=rounds or _rounds())
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8")
        )
    except ValueError:
        # malformed hash or password longer than bcrypt accepts
        return False


@lru_cache(maxsize=8)
def _dummy_hash(rounds: int) -> str:
    return hash_password("dummy-password-for-timing", rounds=rounds)


def burn_verify(plain_password: str) -> bool:
    """Run a full bcrypt comparison against a throwaway hash.

    Called when no account matched, so a miss costs the same as a wrong
    password. Always returns False.
    """
    verify_password(plain_password or "x", _dummy_hash(_rounds()))
    return False
