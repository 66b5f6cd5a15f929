"""
AppContext — the explicitly constructed bundle of shared resources.

Holds the database session factory, the pooled outbound HTTP client and the
connector registry.  Services receive it at construction instead of reaching
for module-level singletons, so tests can build one around fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from config.settings import Settings
from connectors.encryption import TokenCipher
from connectors.registry import ConnectorRegistry
from database.session import build_engine, build_session_factory

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    http_client: httpx.AsyncClient
    registry: ConnectorRegistry
    cipher: TokenCipher
    engine: Optional[AsyncEngine] = field(default=None, repr=False)

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        engine: Optional[AsyncEngine] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "AppContext":
        """Wire up engine, HTTP client, cipher and connectors from ``settings``."""
        engine = engine or build_engine(settings.database_url, echo=settings.database_echo)
        http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout_seconds)
        )
        registry = ConnectorRegistry.from_settings(settings, http_client)
        return cls(
            settings=settings,
            session_factory=build_session_factory(engine),
            http_client=http_client,
            registry=registry,
            cipher=TokenCipher(settings.token_encryption_key),
            engine=engine,
        )

    async def aclose(self) -> None:
        await self.http_client.aclose()
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("Application context closed")
