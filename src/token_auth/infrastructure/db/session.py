"""Async SQLAlchemy engine and session factory helpers."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def create_session_factory(
    database_url: str,
    *,
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create a reusable async session factory for the URL or a shared engine."""

    resolved_engine = engine or create_async_engine(database_url)
    return async_sessionmaker(resolved_engine, expire_on_commit=False)
