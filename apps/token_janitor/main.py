"""token-janitor entrypoint: one pass of expired refresh token cleanup."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta

from token_auth.application.ports.refresh_token_store_port import RefreshTokenStorePort
from token_auth.config.settings import load_settings
from token_auth.infrastructure.db.refresh_token_store import SqlAlchemyRefreshTokenStore
from token_auth.infrastructure.db.session import create_session_factory
from token_auth.infrastructure.logging import configure_logging

# Expired rows are kept a little longer so reuse of a just-expired token still reads as expired.
EXPIRED_RETENTION = timedelta(days=1)
logger = logging.getLogger(__name__)


async def purge_expired_refresh_tokens(
    store: RefreshTokenStorePort,
    *,
    now: datetime,
    retention: timedelta = EXPIRED_RETENTION,
) -> int:
    """Delete refresh token rows that expired before now minus retention."""

    cutoff = now - retention
    deleted = await store.purge_expired(before=cutoff)
    logger.info("refresh_tokens_purged deleted=%s cutoff=%s", deleted, cutoff.isoformat())
    return deleted


async def _run_janitor() -> None:
    settings = load_settings()
    configure_logging(level=settings.log_level)
    store = SqlAlchemyRefreshTokenStore(create_session_factory(settings.database_url))
    await purge_expired_refresh_tokens(store, now=datetime.now(tz=UTC))


def main() -> None:
    """Run one janitor pass."""

    asyncio.run(_run_janitor())


if __name__ == "__main__":
    main()
