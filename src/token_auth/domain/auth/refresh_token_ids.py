"""Opaque refresh token identifier generation and hashing helpers."""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Callable

REFRESH_TOKEN_BYTES = 32


def generate_refresh_token() -> str:
    """Return a URL-safe identifier carrying 256 bits of randomness."""

    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)


def hash_refresh_token(token: str) -> str:
    """Return the SHA-256 hex digest used as the storage key for a raw token."""

    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def short_token_hash(token_hash: str) -> str:
    """Return a log-safe prefix of a token hash."""

    return token_hash[:12]


TokenFactory = Callable[[], str]
