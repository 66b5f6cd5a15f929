"""
ConnectorRegistry — maps provider slugs to their adapters.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

import httpx

from config.settings import Settings
from connectors.base import BaseConnector
from connectors.linkedin import LinkedInConnector

logger = logging.getLogger(__name__)


class ConnectorRegistry:
    """Registry of every known OAuth connector, configured or not."""

    def __init__(self, connectors: Iterable[BaseConnector] = ()):
        self._connectors: Dict[str, BaseConnector] = {}
        for conn in connectors:
            self.register(conn)

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> "ConnectorRegistry":
        # Add new providers here.
        return cls([
            LinkedInConnector.from_settings(settings, http_client),
        ])

    def register(self, connector: BaseConnector) -> None:
        self._connectors[connector.provider_name] = connector
        if connector.is_configured():
            logger.info(
                "Connector registered: %s (%s)",
                connector.display_name,
                connector.provider_name,
            )
        else:
            logger.warning(
                "Connector %s registered but not configured (missing client_id/secret)",
                connector.provider_name,
            )

    def get(self, provider: str) -> Optional[BaseConnector]:
        """Get a configured connector by provider name."""
        conn = self._connectors.get(provider)
        if conn is None or not conn.is_configured():
            return None
        return conn

    def list_providers(self) -> List[Dict[str, object]]:
        """Return info about all known connectors."""
        return [
            {
                "provider": c.provider_name,
                "display_name": c.display_name,
                "configured": c.is_configured(),
            }
            for c in self._connectors.values()
        ]
