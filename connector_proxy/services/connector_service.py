"""Connector service: the proxy's test, send, exchange and revoke operations."""

from typing import Any, Mapping, Optional
import logging

import httpx

from connector_proxy.core.config import Settings
from connector_proxy.integrations import (
    BaseConnector,
    CredentialValidationError,
    IntegrationRegistry,
    UnsupportedOperationError,
)
from connector_proxy.models import BaseCredentials, parse_credentials
from connector_proxy.schemas.integration import ConnectorResult

logger = logging.getLogger(__name__)


class ConnectorService:
    """Dispatches proxy operations to the registered provider connector.

    Every method validates the provider and the credential bag before any
    network traffic, then performs exactly one provider call. Failures
    propagate as ``IntegrationError`` subclasses.
    """

    def __init__(
        self,
        registry: IntegrationRegistry,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.registry = registry
        self.settings = settings
        self.http_client = http_client

    def _connector(self, provider: str) -> BaseConnector:
        config = self.registry.require(provider)
        connector_class = self.registry.connector_class(provider)
        return connector_class(config, self.settings, self.http_client)

    def _credentials(
        self,
        provider: str,
        raw: Optional[Mapping[str, Any]],
    ) -> BaseCredentials:
        self.registry.require(provider)
        credentials = parse_credentials(provider, raw)
        if credentials.is_empty():
            raise CredentialValidationError("No credentials provided", provider)
        return credentials

    async def test_connection(
        self,
        provider: str,
        credentials: Optional[Mapping[str, Any]],
    ) -> ConnectorResult:
        """Validate credentials against the provider."""
        parsed = self._credentials(provider, credentials)
        async with self._connector(provider) as connector:
            result = await connector.test_connection(parsed)
        logger.info(f"Connection test succeeded for {provider}")
        return result

    async def send_message(
        self,
        provider: str,
        credentials: Optional[Mapping[str, Any]],
        message: str,
        destination: Optional[str] = None,
    ) -> ConnectorResult:
        """Deliver a message through the provider."""
        config = self.registry.require(provider)
        if not config.supports_send:
            raise UnsupportedOperationError(
                f"Sending messages is not supported for {config.name}", provider
            )
        parsed = self._credentials(provider, credentials)
        async with self._connector(provider) as connector:
            result = await connector.send_message(parsed, message, destination)
        logger.info(f"Message delivered via {provider}")
        return result

    async def exchange_code(
        self,
        provider: str,
        code: str,
        redirect_uri: str,
    ) -> BaseCredentials:
        """Exchange an OAuth authorization code for provider credentials."""
        config = self.registry.require(provider)
        if not config.supports_exchange:
            raise UnsupportedOperationError(
                f"OAuth token exchange is not implemented for {config.name}", provider
            )
        if not code:
            raise CredentialValidationError("No authorization code provided", provider)

        async with self._connector(provider) as connector:
            credentials = await connector.exchange_code(code, redirect_uri)
        return credentials

    async def revoke(
        self,
        provider: str,
        credentials: Optional[Mapping[str, Any]],
    ) -> bool:
        """Invalidate credentials at the provider."""
        parsed = self._credentials(provider, credentials)
        async with self._connector(provider) as connector:
            revoked = await connector.revoke(parsed)
        logger.info(f"Revocation for {provider} returned {revoked}")
        return revoked
