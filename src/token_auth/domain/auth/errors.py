"""Authentication error taxonomy shared by services and transport adapters."""

from __future__ import annotations

from enum import StrEnum


class AuthFailureReason(StrEnum):
    """Internal cause attached to a rejected authentication attempt."""

    INVALID_CREDENTIALS = "invalid_credentials"
    INACTIVE_USER = "inactive_user"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    REVOKED = "revoked"
    REUSED = "reused"
    INVALID_TOKEN = "invalid_token"


class AuthenticationError(Exception):
    """Definitive authentication rejection; never retried."""

    def __init__(self, message: str, *, reason: AuthFailureReason) -> None:
        super().__init__(message)
        self.reason = reason


class AccessTokenError(Exception):
    """Base class for access token verification failures."""


class InvalidTokenSignatureError(AccessTokenError):
    """Raised when the token signature does not match its payload."""


class AccessTokenExpiredError(AccessTokenError):
    """Raised when the token is past its expiry instant."""


class MalformedTokenError(AccessTokenError):
    """Raised when the token cannot be parsed into the expected claims."""


class TokenEncodingError(RuntimeError):
    """Raised when an access token payload cannot be serialized."""
