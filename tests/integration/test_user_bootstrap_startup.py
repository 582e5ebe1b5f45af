from __future__ import annotations

from pathlib import Path
from uuid import uuid4

import pytest
import sqlalchemy as sa
from alembic.config import Config
from fastapi.testclient import TestClient

from alembic import command
from apps.auth_api.main import create_app
from token_auth.config.settings import Settings
from token_auth.infrastructure.db.session import create_session_factory
from token_auth.infrastructure.db.user_bootstrap import (
    UserBootstrapConfig,
    UserBootstrapOutcome,
    ensure_initial_user,
)
from token_auth.infrastructure.security.password_hasher import BcryptPasswordHasher

SECRET = "bootstrap-test-signing-secret-0123456789abcdef"


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")
    return sync_url, async_url


def _set_runtime_env(monkeypatch: pytest.MonkeyPatch, *, database_url: str) -> None:
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("JWT_SECRET", SECRET)
    monkeypatch.delenv("BOOTSTRAP_USER_PASSWORD_FILE", raising=False)
    monkeypatch.delenv("COOKIE_SECURE", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)


def _user_emails(sync_url: str) -> list[str]:
    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        return list(connection.execute(sa.text("SELECT email FROM users ORDER BY email")).scalars())


@pytest.mark.asyncio
async def test_ensure_initial_user_creates_once_then_skips(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "bootstrap_once.db")
    session_factory = create_session_factory(async_url)
    config = UserBootstrapConfig(email="admin@example.org", password="bootstrap-password")
    hasher = BcryptPasswordHasher(rounds=4)

    first = await ensure_initial_user(
        session_factory=session_factory,
        password_hasher=hasher,
        config=config,
    )
    second = await ensure_initial_user(
        session_factory=session_factory,
        password_hasher=hasher,
        config=UserBootstrapConfig(email="other@example.org", password="bootstrap-password"),
    )

    assert first.outcome is UserBootstrapOutcome.CREATED
    assert second.outcome is UserBootstrapOutcome.SKIPPED_USERS_PRESENT
    assert _user_emails(sync_url) == ["admin@example.org"]


def test_startup_bootstraps_user_who_can_then_log_in(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "bootstrap_startup.db")
    _set_runtime_env(monkeypatch, database_url=async_url)
    monkeypatch.setenv("BOOTSTRAP_USER_EMAIL", "Admin@Example.org")
    monkeypatch.setenv("BOOTSTRAP_USER_PASSWORD", "bootstrap-password")

    app = create_app(settings=Settings(_env_file=None))
    with TestClient(app) as client:
        response = client.post(
            "/auth/login",
            json={"email": "admin@example.org", "password": "bootstrap-password"},
        )

    assert _user_emails(sync_url) == ["admin@example.org"]
    assert response.status_code == 200
    assert response.json() == {"message": "Login successful"}


def test_startup_skips_bootstrap_when_users_exist(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "bootstrap_existing.db")
    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        connection.execute(
            sa.text("INSERT INTO users (id, email, password_hash) VALUES (:id, :email, :hash)"),
            {"id": uuid4().hex, "email": "existing@example.org", "hash": "hash"},
        )
    _set_runtime_env(monkeypatch, database_url=async_url)
    monkeypatch.setenv("BOOTSTRAP_USER_EMAIL", "admin@example.org")
    monkeypatch.setenv("BOOTSTRAP_USER_PASSWORD", "bootstrap-password")

    app = create_app(settings=Settings(_env_file=None))
    with TestClient(app):
        pass

    assert _user_emails(sync_url) == ["existing@example.org"]


def test_startup_fails_on_invalid_bootstrap_config(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _, async_url = _upgrade_head(tmp_path, "bootstrap_invalid.db")
    _set_runtime_env(monkeypatch, database_url=async_url)
    monkeypatch.delenv("BOOTSTRAP_USER_EMAIL", raising=False)
    monkeypatch.setenv("BOOTSTRAP_USER_PASSWORD", "bootstrap-password")

    with pytest.raises(RuntimeError, match="invalid user bootstrap configuration"):
        create_app(settings=Settings(_env_file=None))
