"""FastAPI router for cookie-delivered login, refresh and logout."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError, field_validator

from token_auth.application.services.auth_engine import AuthEngine
from token_auth.domain.auth.credentials import (
    MAX_PASSWORD_BYTES,
    MIN_PASSWORD_LENGTH,
    password_exceeds_byte_limit,
)
from token_auth.domain.auth.errors import AuthenticationError
from token_auth.infrastructure.http.cookies import (
    CookiePolicy,
    clear_token_cookies,
    read_access_token,
    read_refresh_token,
    set_token_cookies,
)

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class LoginRequest(BaseModel):
    """Login request body."""

    email: str = Field(pattern=_EMAIL_PATTERN, max_length=320)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_BYTES)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt_input(cls, value: str) -> str:
        if password_exceeds_byte_limit(value):
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8")
        return value


class MessageResponse(BaseModel):
    """Plain acknowledgement body."""

    message: str


class CurrentIdentityResponse(BaseModel):
    """Identity resolved from a valid access token."""

    subject: str
    claims: dict[str, Any]


def error_response(status_code: int, error: str, *, details: Any | None = None) -> JSONResponse:
    """Build the uniform `{"error": ...}` envelope."""

    content: dict[str, Any] = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def build_auth_router(*, auth_engine: AuthEngine, cookie_policy: CookiePolicy) -> APIRouter:
    """Build router exposing cookie-based token lifecycle endpoints."""

    router = APIRouter(prefix="/auth", tags=["auth"])

    @router.post("/login", response_model=MessageResponse)
    async def login(request: Request) -> JSONResponse:
        raw_body = await request.body()
        try:
            payload = LoginRequest.model_validate_json(raw_body)
        except ValidationError as error:
            details = jsonable_encoder(
                error.errors(include_url=False, include_context=False, include_input=False)
            )
            return error_response(400, "Invalid input", details=details)

        try:
            tokens = await auth_engine.login(payload.email, payload.password)
        except AuthenticationError as exc:
            logger.info("login_rejected reason=%s", exc.reason.value)
            return error_response(401, str(exc))

        response = JSONResponse(content={"message": "Login successful"})
        set_token_cookies(response, tokens=tokens, policy=cookie_policy)
        return response

    @router.post("/refresh", response_model=MessageResponse)
    async def refresh(request: Request) -> JSONResponse:
        refresh_token = read_refresh_token(request)
        if refresh_token is None:
            return error_response(401, "Refresh token not found in cookies")

        try:
            tokens = await auth_engine.refresh_token(refresh_token)
        except AuthenticationError as exc:
            # Cause stays in logs; the client only learns the token was not accepted.
            logger.info("refresh_rejected reason=%s", exc.reason.value)
            return error_response(401, "Invalid refresh token")

        response = JSONResponse(content={"message": "Tokens refreshed successfully"})
        set_token_cookies(response, tokens=tokens, policy=cookie_policy)
        return response

    @router.post("/logout", response_model=MessageResponse)
    async def logout(request: Request) -> JSONResponse:
        refresh_token = read_refresh_token(request)
        if refresh_token is not None:
            await auth_engine.logout(refresh_token)

        response = JSONResponse(content={"message": "Logout successful"})
        clear_token_cookies(response, policy=cookie_policy)
        return response

    @router.get("/me", response_model=CurrentIdentityResponse)
    async def current_identity(request: Request) -> JSONResponse:
        access_token = read_access_token(request)
        if access_token is None:
            return error_response(401, "Access token not found")

        try:
            identity = auth_engine.authenticate(access_token)
        except AuthenticationError as exc:
            return error_response(401, str(exc))

        return JSONResponse(
            content=CurrentIdentityResponse(
                subject=identity.subject,
                claims=dict(identity.claims),
            ).model_dump(),
        )

    return router
