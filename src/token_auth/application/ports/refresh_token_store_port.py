"""Port for server-side refresh token records with rotation and revocation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

from token_auth.domain.auth.identity import Identity


class RefreshTokenError(Exception):
    """Base class for refresh token store rejections."""


class RefreshTokenNotFoundError(RefreshTokenError):
    """Raised when no record exists for the presented token."""


class RefreshTokenExpiredError(RefreshTokenError):
    """Raised when the presented token is past its expiry."""


class RefreshTokenRevokedError(RefreshTokenError):
    """Raised when the presented token was explicitly revoked."""


class RefreshTokenReusedError(RefreshTokenError):
    """Raised when an already rotated token is presented again.

    The store revokes the whole login session chain before raising.
    """

    def __init__(self, message: str, *, session_id: str, revoked_count: int) -> None:
        super().__init__(message)
        self.session_id = session_id
        self.revoked_count = revoked_count


@dataclass(frozen=True)
class RefreshTokenRecord:
    """Persisted refresh token model keyed by the hash of its raw identifier."""

    token_hash: str
    session_id: str
    subject: str
    claims: Mapping[str, Any]
    issued_at: datetime
    expires_at: datetime
    revoked_at: datetime | None
    replaced_by_hash: str | None
    rotated_at: datetime | None

    @property
    def identity(self) -> Identity:
        return Identity(subject=self.subject, claims=self.claims)

    def is_active_at(self, now: datetime) -> bool:
        return (
            self.revoked_at is None
            and self.replaced_by_hash is None
            and self.expires_at > now
        )


@dataclass(frozen=True)
class IssuedRefreshToken:
    """Raw refresh token value paired with its freshly stored record."""

    token: str
    record: RefreshTokenRecord


class RefreshTokenStorePort(Protocol):
    """Refresh token persistence contract."""

    async def create(self, identity: Identity, ttl: timedelta) -> IssuedRefreshToken:
        """Insert an active record for a new login session and return its raw token."""

    async def rotate(self, token: str, *, ttl: timedelta | None = None) -> IssuedRefreshToken:
        """Atomically supersede token with a new active record for the same identity."""

    async def revoke(self, token: str) -> int:
        """Revoke the token's whole session chain; unknown tokens are a no-op."""

    async def is_active(self, token: str) -> bool:
        """Return whether token exists and is not expired, revoked or superseded."""

    async def get(self, token: str) -> RefreshTokenRecord | None:
        """Return the record stored for token, whatever its state."""

    async def purge_expired(self, *, before: datetime) -> int:
        """Delete records that expired at or before the given instant."""
