"""Port for stateless access token minting and verification."""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol

from token_auth.domain.auth.identity import Identity


class AccessTokenCodecPort(Protocol):
    """Access token codec contract."""

    def mint_access_token(self, identity: Identity, ttl: timedelta) -> str:
        """Return a signed access token for identity valid for ttl."""

    def verify_access_token(self, token: str) -> Identity:
        """Return identity embedded in a valid access token or raise AccessTokenError."""
