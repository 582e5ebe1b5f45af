"""auth-api entrypoint and HTTP route wiring."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from token_auth.application.services.auth_engine import AuthEngine
from token_auth.application.services.credential_service import PasswordCredentialVerifier
from token_auth.config.settings import Settings, load_settings
from token_auth.infrastructure.db.refresh_token_store import SqlAlchemyRefreshTokenStore
from token_auth.infrastructure.db.session import create_session_factory
from token_auth.infrastructure.db.user_bootstrap import (
    UserBootstrapConfig,
    UserBootstrapConfigError,
    ensure_initial_user,
    resolve_user_bootstrap_config,
)
from token_auth.infrastructure.db.user_repository import SqlAlchemyUserRepository
from token_auth.infrastructure.http.auth_router import build_auth_router, error_response
from token_auth.infrastructure.http.cookies import CookiePolicy
from token_auth.infrastructure.logging import configure_logging
from token_auth.infrastructure.security.password_hasher import BcryptPasswordHasher
from token_auth.infrastructure.security.token_codec import AccessTokenCodec

AUTH_API_HOST = "0.0.0.0"
AUTH_API_PORT = 8000
logger = logging.getLogger(__name__)


def build_auth_engine(
    settings: Settings,
    *,
    session_factory: async_sessionmaker[AsyncSession],
) -> AuthEngine:
    """Build auth engine with SQLAlchemy-backed credential and refresh token stores."""

    return AuthEngine(
        credentials=PasswordCredentialVerifier(
            users=SqlAlchemyUserRepository(session_factory),
            password_hasher=BcryptPasswordHasher(),
        ),
        refresh_tokens=SqlAlchemyRefreshTokenStore(session_factory),
        token_codec=AccessTokenCodec(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            issuer=settings.jwt_issuer,
        ),
        access_token_ttl=settings.access_token_ttl,
        refresh_token_ttl=settings.refresh_token_ttl,
    )


def build_cookie_policy(settings: Settings) -> CookiePolicy:
    """Build cookie attributes matching the configured token lifetimes."""

    return CookiePolicy(
        secure=settings.secure_cookies,
        access_token_ttl=settings.access_token_ttl,
        refresh_token_ttl=settings.refresh_token_ttl,
    )


def create_app(
    *,
    settings: Settings | None = None,
    auth_engine: AuthEngine | None = None,
    cookie_policy: CookiePolicy | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """Create FastAPI app exposing the cookie-based auth endpoints."""

    if settings is None and (auth_engine is None or cookie_policy is None):
        settings = load_settings()
    if settings is not None:
        configure_logging(level=settings.log_level)

    if session_factory is None and settings is not None:
        session_factory = create_session_factory(settings.database_url)
    if auth_engine is None:
        assert settings is not None
        assert session_factory is not None
        auth_engine = build_auth_engine(settings, session_factory=session_factory)
    if cookie_policy is None:
        assert settings is not None
        cookie_policy = build_cookie_policy(settings)

    bootstrap_config = _resolve_bootstrap_config(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if bootstrap_config is not None and session_factory is not None:
            await _bootstrap_initial_user(bootstrap_config, session_factory=session_factory)
        yield

    app = FastAPI(lifespan=lifespan)
    app.include_router(build_auth_router(auth_engine=auth_engine, cookie_policy=cookie_policy))

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "unhandled_error method=%s path=%s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return error_response(500, "An unexpected error occurred")

    return app


def _resolve_bootstrap_config(settings: Settings | None) -> UserBootstrapConfig | None:
    if settings is None:
        return None
    try:
        return resolve_user_bootstrap_config(
            email=settings.bootstrap_user_email,
            password=settings.bootstrap_user_password,
            password_file=settings.bootstrap_user_password_file,
        )
    except UserBootstrapConfigError as exc:
        raise RuntimeError(f"invalid user bootstrap configuration: {exc}") from exc


async def _bootstrap_initial_user(
    config: UserBootstrapConfig,
    *,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    result = await ensure_initial_user(
        session_factory=session_factory,
        password_hasher=BcryptPasswordHasher(),
        config=config,
    )
    logger.info("bootstrap_user outcome=%s email=%s", result.outcome.value, result.email)


def run_asgi_server(*, host: str = AUTH_API_HOST, port: int = AUTH_API_PORT) -> None:
    """Run auth-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.auth_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run auth-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
