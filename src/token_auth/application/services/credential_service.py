"""Credential verification against the users table."""

from __future__ import annotations

import logging

from token_auth.application.ports.credential_verifier_port import CredentialVerifierPort
from token_auth.application.ports.password_hasher_port import PasswordHasherPort
from token_auth.application.ports.user_repository_port import UserRepositoryPort
from token_auth.domain.auth.credentials import (
    normalize_user_email,
    password_exceeds_byte_limit,
)
from token_auth.domain.auth.errors import AuthenticationError, AuthFailureReason
from token_auth.domain.auth.identity import Identity

logger = logging.getLogger(__name__)

_INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class PasswordCredentialVerifier(CredentialVerifierPort):
    """Resolve email/password pairs to identities using stored password hashes."""

    def __init__(
        self,
        *,
        users: UserRepositoryPort,
        password_hasher: PasswordHasherPort,
    ) -> None:
        self._users = users
        self._password_hasher = password_hasher

    async def verify_credentials(self, *, email: str, password: str) -> Identity:
        """Return identity for matching credentials or raise AuthenticationError."""

        try:
            normalized_email = normalize_user_email(email=email)
        except ValueError as exc:
            raise AuthenticationError(
                _INVALID_CREDENTIALS_MESSAGE,
                reason=AuthFailureReason.INVALID_CREDENTIALS,
            ) from exc

        if password_exceeds_byte_limit(password):
            logger.info("login_failed reason=password_too_long")
            raise AuthenticationError(
                _INVALID_CREDENTIALS_MESSAGE,
                reason=AuthFailureReason.INVALID_CREDENTIALS,
            )

        user = await self._users.get_by_email(email=normalized_email)
        if user is None:
            self._password_hasher.burn_verification(password=password)
            logger.info("login_failed reason=unknown_email")
            raise AuthenticationError(
                _INVALID_CREDENTIALS_MESSAGE,
                reason=AuthFailureReason.INVALID_CREDENTIALS,
            )

        if not user.is_active:
            logger.info("login_blocked_inactive user_id=%s", user.user_id)
            raise AuthenticationError(
                _INVALID_CREDENTIALS_MESSAGE,
                reason=AuthFailureReason.INACTIVE_USER,
            )

        is_valid = self._password_hasher.verify_password(
            password=password,
            password_hash=user.password_hash,
        )
        if not is_valid:
            logger.info("login_failed reason=invalid_password user_id=%s", user.user_id)
            raise AuthenticationError(
                _INVALID_CREDENTIALS_MESSAGE,
                reason=AuthFailureReason.INVALID_CREDENTIALS,
            )

        claims = {"email": user.email}
        if user.display_name:
            claims["name"] = user.display_name
        return Identity(subject=str(user.user_id), claims=claims)
