"""Bcrypt password hasher adapter."""

from __future__ import annotations

import bcrypt

from token_auth.application.ports.password_hasher_port import PasswordHasherPort
from token_auth.domain.auth.credentials import MAX_PASSWORD_BYTES, password_exceeds_byte_limit

_DEFAULT_ROUNDS = 12


def _encode(password: str) -> bytes:
    if password_exceeds_byte_limit(password):
        raise ValueError(f"password exceeds {MAX_PASSWORD_BYTES} bytes")
    return password.encode("utf-8")


class BcryptPasswordHasher(PasswordHasherPort):
    """Password hashing adapter using bcrypt.

    Passwords longer than bcrypt's input limit are rejected, never truncated.
    """

    def __init__(self, *, rounds: int = _DEFAULT_ROUNDS) -> None:
        self._rounds = rounds
        # Verified against when the login email is unknown so both paths cost one bcrypt check.
        self._dummy_hash = bcrypt.hashpw(b"unknown-user-placeholder", bcrypt.gensalt(rounds))

    def hash_password(self, password: str) -> str:
        return bcrypt.hashpw(_encode(password), bcrypt.gensalt(self._rounds)).decode("utf-8")

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
        except ValueError:
            return False

    def burn_verification(self, *, password: str) -> None:
        bcrypt.checkpw(_encode(password), self._dummy_hash)
