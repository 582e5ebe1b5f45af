"""SQLAlchemy adapter for refresh token rotation and revocation."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any, NoReturn, cast

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from token_auth.application.ports.refresh_token_store_port import (
    IssuedRefreshToken,
    RefreshTokenExpiredError,
    RefreshTokenNotFoundError,
    RefreshTokenRecord,
    RefreshTokenReusedError,
    RefreshTokenRevokedError,
    RefreshTokenStorePort,
)
from token_auth.domain.auth.identity import Identity
from token_auth.domain.auth.refresh_token_ids import (
    TokenFactory,
    generate_refresh_token,
    hash_refresh_token,
)
from token_auth.infrastructure.db.metadata import refresh_tokens


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class SqlAlchemyRefreshTokenStore(RefreshTokenStorePort):
    """Refresh token store backed by SQLAlchemy async sessions.

    Every transition away from the active state is a guarded UPDATE that only
    matches rows with no successor and no revocation, so a record can never
    return to active and two rotations of one token cannot both match.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        token_factory: TokenFactory | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._token_factory = token_factory or generate_refresh_token
        self._now = now or _utc_now

    async def create(self, identity: Identity, ttl: timedelta) -> IssuedRefreshToken:
        """Insert the first record of a new login session."""

        if ttl <= timedelta(0):
            raise ValueError("refresh token ttl must be positive")

        token = self._token_factory()
        token_hash = hash_refresh_token(token)
        issued_at = self._now()
        statement = sa.insert(refresh_tokens).values(
            token_hash=token_hash,
            session_id=token_hash,
            subject=identity.subject,
            claims=dict(identity.claims),
            issued_at=issued_at,
            expires_at=issued_at + ttl,
        ).returning(*refresh_tokens.c)

        async with self._session_factory() as session:
            row = (await session.execute(statement)).mappings().one()
            await session.commit()

        return IssuedRefreshToken(token=token, record=_to_refresh_token_record(row))

    async def rotate(self, token: str, *, ttl: timedelta | None = None) -> IssuedRefreshToken:
        """Supersede token with a new active record or raise the rejection cause.

        Without ttl the successor keeps the lifetime length of the presented record.
        """

        if ttl is not None and ttl <= timedelta(0):
            raise ValueError("refresh token ttl must be positive")

        presented_hash = hash_refresh_token(token)
        successor_token = self._token_factory()
        successor_hash = hash_refresh_token(successor_token)
        now = self._now()

        claim_statement = (
            sa.update(refresh_tokens)
            .where(
                refresh_tokens.c.token_hash == presented_hash,
                refresh_tokens.c.replaced_by_hash.is_(None),
                refresh_tokens.c.revoked_at.is_(None),
                refresh_tokens.c.expires_at > now,
            )
            .values(replaced_by_hash=successor_hash, rotated_at=now)
            .returning(*refresh_tokens.c)
        )

        async with self._session_factory() as session:
            claimed = (await session.execute(claim_statement)).mappings().first()
            if claimed is None:
                await session.rollback()
                await self._raise_rotation_rejection(session, presented_hash, now=now)

            predecessor = _to_refresh_token_record(claimed)
            lifetime = ttl or (predecessor.expires_at - predecessor.issued_at)
            insert_statement = sa.insert(refresh_tokens).values(
                token_hash=successor_hash,
                session_id=predecessor.session_id,
                subject=predecessor.subject,
                claims=dict(predecessor.claims),
                issued_at=now,
                expires_at=now + lifetime,
            ).returning(*refresh_tokens.c)
            inserted = (await session.execute(insert_statement)).mappings().one()
            await session.commit()

        return IssuedRefreshToken(
            token=successor_token,
            record=_to_refresh_token_record(inserted),
        )

    async def revoke(self, token: str) -> int:
        """Revoke every record of the token's login session; unknown tokens are a no-op."""

        token_hash = hash_refresh_token(token)
        async with self._session_factory() as session:
            record = await self._get_by_hash(session, token_hash)
            if record is None:
                return 0
            revoked = await self._revoke_session_chain(
                session,
                session_id=record.session_id,
                now=self._now(),
            )
            await session.commit()
        return revoked

    async def is_active(self, token: str) -> bool:
        """Return whether token is stored and neither expired, revoked nor superseded."""

        record = await self.get(token)
        return record is not None and record.is_active_at(self._now())

    async def get(self, token: str) -> RefreshTokenRecord | None:
        """Return stored record for the raw token regardless of state."""

        async with self._session_factory() as session:
            return await self._get_by_hash(session, hash_refresh_token(token))

    async def purge_expired(self, *, before: datetime) -> int:
        """Delete records whose expiry is at or before the given instant."""

        statement = sa.delete(refresh_tokens).where(refresh_tokens.c.expires_at <= before)

        async with self._session_factory() as session:
            result = cast(CursorResult[Any], await session.execute(statement))
            await session.commit()

        return int(result.rowcount or 0)

    async def _raise_rotation_rejection(
        self,
        session: AsyncSession,
        token_hash: str,
        *,
        now: datetime,
    ) -> NoReturn:
        record = await self._get_by_hash(session, token_hash)
        if record is None:
            raise RefreshTokenNotFoundError("refresh token not found")
        if record.expires_at <= now:
            raise RefreshTokenExpiredError("refresh token expired")
        if record.replaced_by_hash is not None:
            revoked = await self._revoke_session_chain(
                session,
                session_id=record.session_id,
                now=now,
            )
            await session.commit()
            raise RefreshTokenReusedError(
                "refresh token already rotated",
                session_id=record.session_id,
                revoked_count=revoked,
            )
        if record.revoked_at is not None:
            raise RefreshTokenRevokedError("refresh token revoked")
        # Guarded update missed yet the row reads as active: a concurrent writer touched it.
        raise RefreshTokenRevokedError("refresh token changed during rotation")

    async def _get_by_hash(
        self,
        session: AsyncSession,
        token_hash: str,
    ) -> RefreshTokenRecord | None:
        statement = sa.select(*refresh_tokens.c).where(
            refresh_tokens.c.token_hash == token_hash,
        ).limit(1)
        row = (await session.execute(statement)).mappings().first()
        if row is None:
            return None
        return _to_refresh_token_record(row)

    async def _revoke_session_chain(
        self,
        session: AsyncSession,
        *,
        session_id: str,
        now: datetime,
    ) -> int:
        """Revoke records reachable through successor links until a pass finds nothing new."""

        total = 0
        while True:
            chain = await self._collect_session_chain(session, session_id=session_id)
            if not chain:
                return total
            statement = (
                sa.update(refresh_tokens)
                .where(
                    refresh_tokens.c.token_hash.in_(chain),
                    refresh_tokens.c.revoked_at.is_(None),
                )
                .values(revoked_at=now)
            )
            result = cast(CursorResult[Any], await session.execute(statement))
            revoked = int(result.rowcount or 0)
            if revoked == 0:
                return total
            total += revoked

    async def _collect_session_chain(
        self,
        session: AsyncSession,
        *,
        session_id: str,
    ) -> list[str]:
        statement = sa.select(
            refresh_tokens.c.token_hash,
            refresh_tokens.c.replaced_by_hash,
        ).where(refresh_tokens.c.session_id == session_id)
        rows = (await session.execute(statement)).all()
        successors: dict[str, str | None] = {row[0]: row[1] for row in rows}
        if not successors:
            return []

        # Roots are records no other record points at; normally only the login record,
        # unless it was already purged.
        linked = {successor for successor in successors.values() if successor is not None}
        pending = [token_hash for token_hash in successors if token_hash not in linked]
        chain: list[str] = []
        visited: set[str] = set()
        while pending:
            current: str | None = pending.pop()
            while current is not None and current in successors and current not in visited:
                visited.add(current)
                chain.append(current)
                current = successors[current]
        return chain


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _to_refresh_token_record(row: sa.RowMapping) -> RefreshTokenRecord:
    issued_at = _as_utc(cast(datetime, row["issued_at"]))
    expires_at = _as_utc(cast(datetime, row["expires_at"]))
    assert issued_at is not None
    assert expires_at is not None
    return RefreshTokenRecord(
        token_hash=cast(str, row["token_hash"]),
        session_id=cast(str, row["session_id"]),
        subject=cast(str, row["subject"]),
        claims=dict(row["claims"] or {}),
        issued_at=issued_at,
        expires_at=expires_at,
        revoked_at=_as_utc(cast(datetime | None, row["revoked_at"])),
        replaced_by_hash=cast(str | None, row["replaced_by_hash"]),
        rotated_at=_as_utc(cast(datetime | None, row["rotated_at"])),
    )
