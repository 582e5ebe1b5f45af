from __future__ import annotations

from pathlib import Path
from uuid import uuid4

import pytest
from alembic.config import Config
from sqlalchemy.exc import IntegrityError

from alembic import command
from token_auth.application.ports.user_repository_port import UserCreateInput
from token_auth.infrastructure.db.session import create_session_factory
from token_auth.infrastructure.db.user_repository import SqlAlchemyUserRepository


def _upgrade_head(tmp_path: Path, filename: str) -> str:
    db_path = tmp_path / filename
    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", f"sqlite+pysqlite:///{db_path}")
    command.upgrade(alembic_config, "head")
    return f"sqlite+aiosqlite:///{db_path}"


@pytest.mark.asyncio
async def test_create_then_lookup_by_email_and_id(tmp_path: Path) -> None:
    repository = SqlAlchemyUserRepository(
        create_session_factory(_upgrade_head(tmp_path, "users_lookup.db"))
    )

    created = await repository.create_user(
        UserCreateInput(email="ada@example.org", password_hash="hash", display_name="Ada")
    )

    by_email = await repository.get_by_email(email="ada@example.org")
    by_id = await repository.get_by_id(user_id=created.user_id)
    assert by_email == created
    assert by_id == created
    assert created.is_active is True
    assert created.display_name == "Ada"
    assert await repository.get_by_email(email="missing@example.org") is None
    assert await repository.get_by_id(user_id=uuid4()) is None


@pytest.mark.asyncio
async def test_duplicate_email_is_rejected(tmp_path: Path) -> None:
    repository = SqlAlchemyUserRepository(
        create_session_factory(_upgrade_head(tmp_path, "users_duplicate.db"))
    )
    await repository.create_user(UserCreateInput(email="ada@example.org", password_hash="hash"))

    with pytest.raises(IntegrityError):
        await repository.create_user(
            UserCreateInput(email="ada@example.org", password_hash="other")
        )
