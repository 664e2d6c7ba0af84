"""Validation utilities for registration input."""

from typing import NamedTuple


PASSWORD_MIN_LENGTH = 6
USERNAME_MAX_LENGTH = 50


class ValidationResult(NamedTuple):
    """Result of a validation check."""

    valid: bool
    message: str | None = None


def validate_password(password: str) -> ValidationResult:
    """Validate password length.

    Examples:
        >>> validate_password("secret1")
        ValidationResult(valid=True, message=None)
        >>> validate_password("abc")
        ValidationResult(valid=False, message='Password must be at least 6 characters')
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        return ValidationResult(
            False, f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
        )
    return ValidationResult(True)


def validate_username(username: str) -> ValidationResult:
    """Validate a username: non-blank and bounded; any characters are allowed.

    Examples:
        >>> validate_username("alice")
        ValidationResult(valid=True, message=None)
        >>> validate_username("   ")
        ValidationResult(valid=False, message='Username is required')
    """
    username = username.strip()
    if not username:
        return ValidationResult(False, "Username is required")
    if len(username) > USERNAME_MAX_LENGTH:
        return ValidationResult(
            False, f"Username must be at most {USERNAME_MAX_LENGTH} characters"
        )
    return ValidationResult(True)
