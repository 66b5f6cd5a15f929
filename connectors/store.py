"""
Credential store — one OAuth connection per (user, provider).

This is the single interface the OAuth service uses to read and write
provider tokens.  Tokens are encrypted with ``TokenCipher`` on the way in
and decrypted on the way out; callers only ever see ``StoredConnection``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from connectors.encryption import TokenCipher
from database.models import OAuthConnection

logger = logging.getLogger(__name__)


def _to_uuid(value: str | uuid.UUID) -> uuid.UUID:
    return uuid.UUID(value) if isinstance(value, str) else value


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything we write is UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class StoredConnection:
    """Decrypted view of an ``oauth_connections`` row."""

    connection_id: str
    user_id: str
    provider: str
    provider_user_id: str
    access_token: str
    refresh_token: Optional[str]
    token_expires_at: Optional[datetime]
    scopes: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: OAuthConnection, cipher: TokenCipher) -> "StoredConnection":
        return cls(
            connection_id=str(row.connection_id),
            user_id=str(row.user_id),
            provider=row.provider,
            provider_user_id=row.provider_user_id,
            access_token=cipher.decrypt(row.access_token),
            refresh_token=cipher.decrypt(row.refresh_token) or None,
            token_expires_at=_as_utc(row.token_expires_at),
            scopes=list(row.scopes or []),
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )


def is_expired(connection: StoredConnection, *, now: Optional[datetime] = None) -> bool:
    """
    True when the access token can no longer be used.

    A connection without an expiry is treated as expired.
    """
    expires_at = _as_utc(connection.token_expires_at)
    if expires_at is None:
        return True
    current = now or datetime.now(timezone.utc)
    return current >= expires_at


class CredentialStore:
    """get / upsert / remove for ``OAuthConnection`` rows within one session."""

    def __init__(self, session: AsyncSession, cipher: TokenCipher):
        self._session = session
        self._cipher = cipher

    is_expired = staticmethod(is_expired)

    async def _get_row(self, user_id: str, provider: str) -> Optional[OAuthConnection]:
        result = await self._session.execute(
            select(OAuthConnection).where(
                OAuthConnection.user_id == _to_uuid(user_id),
                OAuthConnection.provider == provider,
            )
        )
        return result.scalar_one_or_none()

    async def get(self, user_id: str, provider: str) -> Optional[StoredConnection]:
        row = await self._get_row(user_id, provider)
        if row is None:
            return None
        return StoredConnection.from_row(row, self._cipher)

    async def upsert(
        self,
        user_id: str,
        provider: str,
        *,
        provider_user_id: str,
        access_token: str,
        refresh_token: Optional[str] = None,
        token_expires_at: Optional[datetime] = None,
        scopes: Sequence[str] = (),
    ) -> StoredConnection:
        """
        Store a new connection or update the existing one in place.

        A reconnect that comes back without a refresh token keeps the one
        already stored. If another
        request inserts the same (user, provider) row first, the insert is
        rolled back to a savepoint and applied as an update instead.
        """
        now = datetime.now(timezone.utc)
        row = await self._get_row(user_id, provider)

        if row is None:
            row = OAuthConnection(
                connection_id=uuid.uuid4(),
                user_id=_to_uuid(user_id),
                provider=provider,
                provider_user_id=provider_user_id,
                access_token=self._cipher.encrypt(access_token),
                refresh_token=self._cipher.encrypt(refresh_token) if refresh_token else None,
                token_expires_at=token_expires_at,
                scopes=list(scopes),
                created_at=now,
                updated_at=now,
            )
            try:
                async with self._session.begin_nested():
                    self._session.add(row)
            except IntegrityError:
                logger.info("%s connection for user %s already exists, updating", provider, user_id)
                row = await self._get_row(user_id, provider)
                if row is None:
                    raise
            else:
                logger.info("Created %s connection for user %s", provider, user_id)
                return StoredConnection.from_row(row, self._cipher)

        row.provider_user_id = provider_user_id
        row.access_token = self._cipher.encrypt(access_token)
        if refresh_token:
            row.refresh_token = self._cipher.encrypt(refresh_token)
        row.token_expires_at = token_expires_at
        row.scopes = list(scopes)
        row.updated_at = now
        await self._session.flush()
        logger.info("Updated %s connection for user %s", provider, user_id)
        return StoredConnection.from_row(row, self._cipher)

    async def update_tokens(
        self,
        user_id: str,
        provider: str,
        *,
        access_token: str,
        token_expires_at: Optional[datetime],
        refresh_token: Optional[str] = None,
    ) -> Optional[StoredConnection]:
        """Swap in refreshed tokens; returns ``None`` if the connection is gone."""
        row = await self._get_row(user_id, provider)
        if row is None:
            return None
        row.access_token = self._cipher.encrypt(access_token)
        row.token_expires_at = token_expires_at
        # Some providers rotate refresh tokens.
        if refresh_token:
            row.refresh_token = self._cipher.encrypt(refresh_token)
        row.updated_at = datetime.now(timezone.utc)
        await self._session.flush()
        return StoredConnection.from_row(row, self._cipher)

    async def remove(self, user_id: str, provider: str) -> bool:
        """Delete the connection. Idempotent; returns whether a row existed."""
        result = await self._session.execute(
            delete(OAuthConnection).where(
                OAuthConnection.user_id == _to_uuid(user_id),
                OAuthConnection.provider == provider,
            )
        )
        deleted = (result.rowcount or 0) > 0
        if deleted:
            logger.info("Removed %s connection for user %s", provider, user_id)
        return deleted
