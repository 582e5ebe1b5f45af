"""Cookie transport for access and refresh tokens."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from fastapi import Request, Response

from token_auth.domain.auth.identity import TokenPair

ACCESS_TOKEN_COOKIE_NAME = "accessToken"
REFRESH_TOKEN_COOKIE_NAME = "refreshToken"


@dataclass(frozen=True)
class CookiePolicy:
    """Attributes shared by every token cookie the API sets or clears."""

    secure: bool
    access_token_ttl: timedelta
    refresh_token_ttl: timedelta
    path: str = "/"
    domain: str | None = None


def set_token_cookies(response: Response, *, tokens: TokenPair, policy: CookiePolicy) -> None:
    """Attach both tokens as HttpOnly, SameSite=Strict cookies with matching lifetimes."""

    _set_cookie(
        response,
        key=ACCESS_TOKEN_COOKIE_NAME,
        value=tokens.access_token,
        max_age=policy.access_token_ttl,
        policy=policy,
    )
    _set_cookie(
        response,
        key=REFRESH_TOKEN_COOKIE_NAME,
        value=tokens.refresh_token,
        max_age=policy.refresh_token_ttl,
        policy=policy,
    )


def clear_token_cookies(response: Response, *, policy: CookiePolicy) -> None:
    """Expire both token cookies using the attributes they were set with."""

    for key in (ACCESS_TOKEN_COOKIE_NAME, REFRESH_TOKEN_COOKIE_NAME):
        response.delete_cookie(
            key,
            path=policy.path,
            domain=policy.domain,
            secure=policy.secure,
            httponly=True,
            samesite="strict",
        )


def read_access_token(request: Request) -> str | None:
    """Return access token from its cookie, falling back to `Authorization: Bearer`."""

    cookie_value = request.cookies.get(ACCESS_TOKEN_COOKIE_NAME)
    if cookie_value:
        return cookie_value

    header = request.headers.get("authorization")
    if header is None:
        return None
    parts = header.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def read_refresh_token(request: Request) -> str | None:
    return request.cookies.get(REFRESH_TOKEN_COOKIE_NAME) or None


def _set_cookie(
    response: Response,
    *,
    key: str,
    value: str,
    max_age: timedelta,
    policy: CookiePolicy,
) -> None:
    response.set_cookie(
        key,
        value,
        max_age=int(max_age.total_seconds()),
        path=policy.path,
        domain=policy.domain,
        secure=policy.secure,
        httponly=True,
        samesite="strict",
    )
