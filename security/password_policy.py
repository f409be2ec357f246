"""Password strength rule applied when accounts are created.

Checks run in a fixed order and stop at the first failure, so exactly one
reason is reported per password. The order matters: the messages shown to
people registering depend on it.
"""
import re
from enum import Enum
from typing import Optional, Tuple

MIN_LENGTH = 8
MAX_REPEATED = 3

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"[0-9]")
_SYMBOL = re.compile(r"[^A-Za-z0-9]")
_REPEATED = re.compile(r"(.)\1{%d,}" % MAX_REPEATED, re.DOTALL)

# Compared against the lowercase form of the candidate.
COMMON_PASSWORDS = frozenset({
    "password", "password123", "123456", "12345678", "qwerty",
    "abc123", "password1", "admin", "letmein", "welcome",
    "monkey", "1234567890", "dragon", "master",
    # variants that satisfy the character-class checks
    "p@ssw0rd", "p@ssw0rd1", "p@ssword1", "passw0rd!", "p@ssw0rd!",
    "qwerty1!", "qwerty123!", "welcome1!", "welcome@1", "admin@123",
    "admin123!", "letmein1!", "iloveyou1!", "abc@1234", "changeme1!",
})


class PasswordRule(str, Enum):
    TOO_SHORT = "TooShort"
    MISSING_UPPERCASE = "MissingUppercase"
    MISSING_LOWERCASE = "MissingLowercase"
    MISSING_DIGIT = "MissingDigit"
    MISSING_SPECIAL_CHAR = "MissingSpecialChar"
    TOO_COMMON = "TooCommon"
    REPEATED_CHARS = "RepeatedChars"


MESSAGES = {
    PasswordRule.TOO_SHORT: "The {attribute} must be at least %d characters long." % MIN_LENGTH,
    PasswordRule.MISSING_UPPERCASE: "The {attribute} must contain at least one uppercase letter.",
    PasswordRule.MISSING_LOWERCASE: "The {attribute} must contain at least one lowercase letter.",
    PasswordRule.MISSING_DIGIT: "The {attribute} must contain at least one number.",
    PasswordRule.MISSING_SPECIAL_CHAR: "The {attribute} must contain at least one special character.",
    PasswordRule.TOO_COMMON: "The {attribute} is too common. Please choose a more unique password.",
    PasswordRule.REPEATED_CHARS: "The {attribute} cannot contain more than %d repeated characters in a row." % MAX_REPEATED,
}


def check_password(pw: str) -> Optional[PasswordRule]:
    """Return the first rule ``pw`` breaks, or None when it is strong enough."""
    if len(pw) < MIN_LENGTH:
        return PasswordRule.TOO_SHORT
    if not _UPPER.search(pw):
        return PasswordRule.MISSING_UPPERCASE
    if not _LOWER.search(pw):
        return PasswordRule.MISSING_LOWERCASE
    if not _DIGIT.search(pw):
        return PasswordRule.MISSING_DIGIT
    if not _SYMBOL.search(pw):
        return PasswordRule.MISSING_SPECIAL_CHAR
    if pw.lower() in COMMON_PASSWORDS:
        return PasswordRule.TOO_COMMON
    if _REPEATED.search(pw):
        return PasswordRule.REPEATED_CHARS
    return None


def validate_password(pw, attribute: str = "password") -> Tuple[bool, Optional[PasswordRule], Optional[str]]:
    """Returns (valid, failed_rule, message)."""
    if not isinstance(pw, str):
        return False, PasswordRule.TOO_SHORT, "The %s must be a string." % attribute

    rule = check_password(pw)
    if rule is None:
        return True, None, None
    return False, rule, MESSAGES[rule].format(attribute=attribute)
