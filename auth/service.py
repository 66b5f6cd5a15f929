"""
IdentityService — local user accounts.

Registers and authenticates users and maintains their preference bag.
Session tokens are minted by the route layer (``auth.jwt``) from the user
this service returns.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from auth.password import hash_password, verify_password
from core.errors import DuplicateEmailError, InvalidCredentialsError, UserNotFoundError
from database.models import User
from database.session import transaction

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: Dict[str, Any] = {
    "brand_voice": "professional",
    "tone": "informative",
    "default_hashtags": [],
}


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _parse_uuid(value: str | uuid.UUID) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(value)
    except (ValueError, TypeError, AttributeError):
        return None


class IdentityService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        bcrypt_rounds: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self._bcrypt_rounds = bcrypt_rounds

    @staticmethod
    async def _find_by_email(session: AsyncSession, email: str) -> Optional[User]:
        result = await session.execute(
            select(User).where(User.email == _normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def register(self, email: str, name: str, password: str) -> User:
        """Create a user; ``DuplicateEmailError`` if the email is taken."""
        async with transaction(self._session_factory) as session:
            if await self._find_by_email(session, email) is not None:
                raise DuplicateEmailError()

            now = datetime.now(timezone.utc)
            user = User(
                user_id=uuid.uuid4(),
                email=_normalize_email(email),
                display_name=name,
                password_hash=hash_password(password, self._bcrypt_rounds),
                preferences=dict(DEFAULT_PREFERENCES),
                created_at=now,
                updated_at=now,
            )
            session.add(user)
            try:
                await session.flush()
            except IntegrityError as exc:
                raise DuplicateEmailError() from exc

        logger.info("Registered user %s (%s)", user.email, user.user_id)
        return user

    async def login(self, email: str, password: str) -> User:
        """
        Authenticate with email + password.

        Unknown email, passwordless account and wrong password all raise the
        same ``InvalidCredentialsError``.
        """
        async with transaction(self._session_factory) as session:
            user = await self._find_by_email(session, email)

        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt for %s", _normalize_email(email))
            raise InvalidCredentialsError()

        logger.info("Login: %s (%s)", user.email, user.user_id)
        return user

    async def get_by_id(self, user_id: str) -> Optional[User]:
        uid = _parse_uuid(user_id)
        if uid is None:
            return None
        async with transaction(self._session_factory) as session:
            return await session.get(User, uid)

    async def get_by_email(self, email: str) -> Optional[User]:
        async with transaction(self._session_factory) as session:
            return await self._find_by_email(session, email)

    async def update_preferences(self, user_id: str, preferences: Dict[str, Any]) -> User:
        """Shallow-merge ``preferences`` into the stored bag."""
        uid = _parse_uuid(user_id)
        async with transaction(self._session_factory) as session:
            user = await session.get(User, uid) if uid is not None else None
            if user is None:
                raise UserNotFoundError()
            user.preferences = {**(user.preferences or {}), **preferences}
            user.updated_at = datetime.now(timezone.utc)
            await session.flush()

        logger.info("Updated preferences for user %s: %s", user.user_id, sorted(preferences))
        return user
