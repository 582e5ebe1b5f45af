"""Port for the credential store consulted on login."""

from __future__ import annotations

from typing import Protocol

from token_auth.domain.auth.identity import Identity


class CredentialVerifierPort(Protocol):
    """Credential verification contract."""

    async def verify_credentials(self, *, email: str, password: str) -> Identity:
        """Return the matching identity or raise AuthenticationError."""
