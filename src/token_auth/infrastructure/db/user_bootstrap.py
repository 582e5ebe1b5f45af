"""Bootstrap helper for creating the first login account at startup."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from token_auth.application.ports.password_hasher_port import PasswordHasherPort
from token_auth.domain.auth.credentials import normalize_user_email, validate_user_password
from token_auth.infrastructure.db.metadata import users


class UserBootstrapConfigError(ValueError):
    """Raised when bootstrap-user environment configuration is invalid."""


@dataclass(frozen=True)
class UserBootstrapConfig:
    """Runtime configuration for one-time initial user creation."""

    email: str
    password: str


class UserBootstrapOutcome(StrEnum):
    """Outcome states for one bootstrap attempt."""

    CREATED = "created"
    SKIPPED_USERS_PRESENT = "skipped_users_present"
    SKIPPED_CONCURRENT_INSERT = "skipped_concurrent_insert"


@dataclass(frozen=True)
class UserBootstrapResult:
    """Result model for one initial-user bootstrap attempt."""

    outcome: UserBootstrapOutcome
    email: str


def resolve_user_bootstrap_config(
    *,
    email: str | None,
    password: str | None,
    password_file: str | None,
) -> UserBootstrapConfig | None:
    """Resolve bootstrap-user config from env values or return None when disabled."""

    if email is None:
        if password is not None or password_file is not None:
            raise UserBootstrapConfigError(
                "BOOTSTRAP_USER_EMAIL is required when bootstrap-user variables are set"
            )
        return None

    if password is not None and password_file is not None:
        raise UserBootstrapConfigError(
            "set only one of BOOTSTRAP_USER_PASSWORD or BOOTSTRAP_USER_PASSWORD_FILE"
        )

    resolved_password = password
    if password_file is not None:
        try:
            resolved_password = Path(password_file).read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise UserBootstrapConfigError("failed to read BOOTSTRAP_USER_PASSWORD_FILE") from exc

    if resolved_password is None:
        raise UserBootstrapConfigError(
            "set BOOTSTRAP_USER_PASSWORD or BOOTSTRAP_USER_PASSWORD_FILE "
            "when BOOTSTRAP_USER_EMAIL is set"
        )

    try:
        normalized_email = normalize_user_email(email=email)
        validated_password = validate_user_password(password=resolved_password)
    except ValueError as exc:
        raise UserBootstrapConfigError(f"invalid bootstrap user: {exc}") from exc

    return UserBootstrapConfig(email=normalized_email, password=validated_password)


async def ensure_initial_user(
    *,
    session_factory: async_sessionmaker[AsyncSession],
    password_hasher: PasswordHasherPort,
    config: UserBootstrapConfig,
) -> UserBootstrapResult:
    """Create the configured user when the users table is empty, otherwise skip."""

    async with session_factory() as session:
        user_count = await _read_user_count(session)
        if user_count > 0:
            return UserBootstrapResult(
                outcome=UserBootstrapOutcome.SKIPPED_USERS_PRESENT,
                email=config.email,
            )

        try:
            await session.execute(
                sa.insert(users).values(
                    id=uuid4(),
                    email=config.email,
                    password_hash=password_hasher.hash_password(config.password),
                    is_active=True,
                )
            )
            await session.commit()
        except IntegrityError:
            await session.rollback()
            return UserBootstrapResult(
                outcome=UserBootstrapOutcome.SKIPPED_CONCURRENT_INSERT,
                email=config.email,
            )

    return UserBootstrapResult(outcome=UserBootstrapOutcome.CREATED, email=config.email)


async def _read_user_count(session: AsyncSession) -> int:
    result = await session.execute(sa.select(sa.func.count()).select_from(users))
    return int(result.scalar_one())
