"""Signed, expiring access token codec backed by PyJWT."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from token_auth.application.ports.access_token_codec_port import AccessTokenCodecPort
from token_auth.domain.auth.errors import (
    AccessTokenExpiredError,
    InvalidTokenSignatureError,
    MalformedTokenError,
    TokenEncodingError,
)
from token_auth.domain.auth.identity import REGISTERED_CLAIMS, Identity

ACCESS_TOKEN_TYPE = "access"


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class AccessTokenCodec(AccessTokenCodecPort):
    """Mint and verify stateless access tokens with an explicitly injected secret."""

    def __init__(
        self,
        *,
        secret: str,
        algorithm: str = "HS256",
        issuer: str | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        if not secret:
            raise ValueError("access token secret cannot be blank")
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer
        self._now = now or _utc_now

    def mint_access_token(self, identity: Identity, ttl: timedelta) -> str:
        """Return a signed token for identity valid from now until now + ttl."""

        if ttl <= timedelta(0):
            raise ValueError("access token ttl must be positive")

        issued_at = self._now()
        payload: dict[str, Any] = dict(identity.claims)
        payload.update(
            {
                "sub": identity.subject,
                "iat": issued_at.timestamp(),
                "exp": (issued_at + ttl).timestamp(),
                "typ": ACCESS_TOKEN_TYPE,
                "jti": secrets.token_hex(16),
            }
        )
        if self._issuer is not None:
            payload["iss"] = self._issuer

        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except (TypeError, ValueError) as exc:
            raise TokenEncodingError("failed to encode access token payload") from exc

    def verify_access_token(self, token: str) -> Identity:
        """Return the identity embedded in token after signature and expiry checks."""

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={
                    "require": ["sub", "iat", "exp", "typ"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidSignatureError as exc:
            raise InvalidTokenSignatureError("access token signature mismatch") from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedTokenError(f"malformed access token: {exc}") from exc

        if payload.get("typ") != ACCESS_TOKEN_TYPE:
            raise MalformedTokenError("unexpected token type")

        expires_at = payload["exp"]
        if not isinstance(expires_at, int | float):
            raise MalformedTokenError("access token exp claim must be numeric")
        if expires_at <= self._now().timestamp():
            raise AccessTokenExpiredError("access token expired")

        subject = payload["sub"]
        if not isinstance(subject, str) or not subject:
            raise MalformedTokenError("access token subject must be a non-empty string")

        claims = {key: value for key, value in payload.items() if key not in REGISTERED_CLAIMS}
        return Identity(subject=subject, claims=claims)
