"""
LinguaLens - Form Validation
============================
Email, password and username rules shared by the auth endpoints.
"""

import re
from typing import NamedTuple


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

MIN_PASSWORD_LENGTH = 8
MIN_USERNAME_LENGTH = 3


class PasswordCheck(NamedTuple):
    is_valid: bool
    message: str


def validate_email(email: str) -> bool:
    """Loose shape check: something@something.tld with no whitespace."""
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def validate_password(password: str) -> PasswordCheck:
    """
    Check password strength.

    Rules are evaluated in order and the first failure wins.

    Returns:
        PasswordCheck with ``message`` empty when the password is acceptable
    """
    password = password or ""

    if len(password) < MIN_PASSWORD_LENGTH:
        return PasswordCheck(False, "Password must be at least 8 characters long")

    if not re.search(r"[A-Z]", password):
        return PasswordCheck(False, "Password must contain at least one uppercase letter")

    if not re.search(r"[0-9]", password):
        return PasswordCheck(False, "Password must contain at least one number")

    return PasswordCheck(True, "")


def validate_username(username: str) -> bool:
    return (
        bool(username)
        and len(username) >= MIN_USERNAME_LENGTH
        and USERNAME_PATTERN.match(username) is not None
    )
