"""Login, refresh and logout orchestration over the token codec and refresh store."""

from __future__ import annotations

import logging
from datetime import timedelta

from token_auth.application.ports.access_token_codec_port import AccessTokenCodecPort
from token_auth.application.ports.credential_verifier_port import CredentialVerifierPort
from token_auth.application.ports.refresh_token_store_port import (
    RefreshTokenError,
    RefreshTokenExpiredError,
    RefreshTokenNotFoundError,
    RefreshTokenReusedError,
    RefreshTokenRevokedError,
    RefreshTokenStorePort,
)
from token_auth.domain.auth.errors import (
    AccessTokenError,
    AccessTokenExpiredError,
    AuthenticationError,
    AuthFailureReason,
)
from token_auth.domain.auth.identity import Identity, TokenPair
from token_auth.domain.auth.refresh_token_ids import (
    hash_refresh_token,
    short_token_hash,
)

DEFAULT_ACCESS_TOKEN_TTL = timedelta(minutes=15)
DEFAULT_REFRESH_TOKEN_TTL = timedelta(days=7)

logger = logging.getLogger(__name__)

_REFRESH_REJECTIONS: tuple[tuple[type[RefreshTokenError], AuthFailureReason, str], ...] = (
    (RefreshTokenReusedError, AuthFailureReason.REUSED, "Refresh token reuse detected"),
    (RefreshTokenRevokedError, AuthFailureReason.REVOKED, "Refresh token revoked"),
    (RefreshTokenExpiredError, AuthFailureReason.EXPIRED, "Refresh token expired"),
    (RefreshTokenNotFoundError, AuthFailureReason.NOT_FOUND, "Refresh token not found"),
)


class AuthEngine:
    """Own the token lifecycle: issue on login, rotate on refresh, revoke on logout.

    Store and codec failures leave this class only as AuthenticationError;
    anything else (database outage, encoding failure) propagates unchanged.
    """

    def __init__(
        self,
        *,
        credentials: CredentialVerifierPort,
        refresh_tokens: RefreshTokenStorePort,
        token_codec: AccessTokenCodecPort,
        access_token_ttl: timedelta = DEFAULT_ACCESS_TOKEN_TTL,
        refresh_token_ttl: timedelta = DEFAULT_REFRESH_TOKEN_TTL,
    ) -> None:
        if access_token_ttl <= timedelta(0) or refresh_token_ttl <= timedelta(0):
            raise ValueError("token ttls must be positive")
        self._credentials = credentials
        self._refresh_tokens = refresh_tokens
        self._token_codec = token_codec
        self._access_token_ttl = access_token_ttl
        self._refresh_token_ttl = refresh_token_ttl

    @property
    def access_token_ttl(self) -> timedelta:
        return self._access_token_ttl

    @property
    def refresh_token_ttl(self) -> timedelta:
        return self._refresh_token_ttl

    async def login(self, email: str, password: str) -> TokenPair:
        """Verify credentials and issue a new access token and refresh session."""

        identity = await self._credentials.verify_credentials(email=email, password=password)
        access_token = self._token_codec.mint_access_token(identity, self._access_token_ttl)
        issued = await self._refresh_tokens.create(identity, self._refresh_token_ttl)
        logger.info(
            "login_success subject=%s session_id=%s",
            identity.subject,
            short_token_hash(issued.record.session_id),
        )
        return TokenPair(access_token=access_token, refresh_token=issued.token)

    async def refresh_token(self, token: str) -> TokenPair:
        """Exchange a refresh token for a new pair, invalidating the presented one."""

        try:
            issued = await self._refresh_tokens.rotate(token, ttl=self._refresh_token_ttl)
        except RefreshTokenError as exc:
            raise self._refresh_rejection(token, exc) from exc

        identity = issued.record.identity
        access_token = self._token_codec.mint_access_token(identity, self._access_token_ttl)
        logger.info(
            "refresh_token_rotated subject=%s session_id=%s",
            identity.subject,
            short_token_hash(issued.record.session_id),
        )
        return TokenPair(access_token=access_token, refresh_token=issued.token)

    async def logout(self, token: str) -> None:
        """Revoke the refresh token's session; succeeds for any token value."""

        revoked = await self._refresh_tokens.revoke(token)
        logger.info(
            "logout token=%s revoked=%s",
            short_token_hash(hash_refresh_token(token)),
            revoked,
        )

    def authenticate(self, access_token: str) -> Identity:
        """Return identity for a valid access token or raise AuthenticationError."""

        try:
            return self._token_codec.verify_access_token(access_token)
        except AccessTokenExpiredError as exc:
            raise AuthenticationError(
                "Access token expired",
                reason=AuthFailureReason.EXPIRED,
            ) from exc
        except AccessTokenError as exc:
            logger.info("access_token_rejected error=%s", type(exc).__name__)
            raise AuthenticationError(
                "Invalid access token",
                reason=AuthFailureReason.INVALID_TOKEN,
            ) from exc

    def _refresh_rejection(self, token: str, error: RefreshTokenError) -> AuthenticationError:
        token_ref = short_token_hash(hash_refresh_token(token))
        if isinstance(error, RefreshTokenReusedError):
            logger.warning(
                "refresh_token_reuse_detected token=%s session_id=%s revoked=%s",
                token_ref,
                short_token_hash(error.session_id),
                error.revoked_count,
            )

        for error_type, reason, message in _REFRESH_REJECTIONS:
            if isinstance(error, error_type):
                break
        else:
            reason, message = AuthFailureReason.NOT_FOUND, "Refresh token not found"

        logger.info("refresh_token_rejected token=%s reason=%s", token_ref, reason.value)
        return AuthenticationError(message, reason=reason)
