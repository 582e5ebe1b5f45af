"""Normalization helpers for login credential inputs."""

from __future__ import annotations

MIN_PASSWORD_LENGTH = 8
# bcrypt only reads this many bytes of input.
MAX_PASSWORD_BYTES = 72


def normalize_user_email(*, email: str) -> str:
    """Normalize one login email and reject blank or address-less values."""

    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("email cannot be blank")
    local_part, sep, domain = normalized.partition("@")
    if not sep or not local_part or not domain:
        raise ValueError("email must contain a local part and a domain")
    return normalized


def password_exceeds_byte_limit(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def validate_user_password(*, password: str) -> str:
    """Return password unchanged when it fits the length and UTF-8 byte bounds."""

    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if password_exceeds_byte_limit(password):
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8")
    return password
