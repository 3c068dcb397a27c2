"""Google connectors (Drive and Analytics share one OAuth client)."""

from typing import Type
import logging

from connector_proxy.integrations.base import BaseConnector
from connector_proxy.integrations.registry import IntegrationRegistry
from connector_proxy.models import (
    BaseCredentials,
    GoogleAnalyticsCredentials,
    GoogleDriveCredentials,
)
from connector_proxy.schemas.integration import ConnectorResult

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_REVOKE_URL = "https://oauth2.googleapis.com/revoke"


class GoogleConnector(BaseConnector):
    """Shared Google OAuth handling; subclasses pick the test endpoint."""

    test_url: str = ""
    credentials_class: Type[BaseCredentials] = GoogleDriveCredentials

    async def test_connection(self, credentials) -> ConnectorResult:
        token = self.require(credentials.access_token, "access token")
        response = await self.make_api_request(
            "GET",
            self.test_url,
            headers={"Authorization": f"Bearer {token}"},
            retry_on_timeout=True,
        )
        return ConnectorResult(success=True, data=self.json_or_none(response))

    async def exchange_code(self, code: str, redirect_uri: str) -> BaseCredentials:
        """Exchange an authorization code at Google's token endpoint."""
        client_id, client_secret = self.client_credentials()
        response = await self.make_api_request(
            "POST",
            self.config.token_url or GOOGLE_TOKEN_URL,
            json={
                "code": code,
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        token_data = response.json()

        logger.info(f"{self.config.name} OAuth exchange completed")
        return self.credentials_class(
            access_token=token_data.get("access_token"),
            refresh_token=token_data.get("refresh_token"),
        )

    async def revoke(self, credentials) -> bool:
        """Revoke the refresh token (which also kills its access tokens)."""
        token = self.require(
            credentials.refresh_token or credentials.access_token, "token"
        )
        await self.make_api_request("POST", GOOGLE_REVOKE_URL, params={"token": token})
        return True


@IntegrationRegistry.register("google-drive")
class GoogleDriveConnector(GoogleConnector):
    """Google Drive connector."""

    test_url = "https://www.googleapis.com/drive/v3/about?fields=user"
    credentials_class = GoogleDriveCredentials


@IntegrationRegistry.register("google-analytics")
class GoogleAnalyticsConnector(GoogleConnector):
    """Google Analytics connector."""

    test_url = "https://www.googleapis.com/analytics/v3/management/accounts"
    credentials_class = GoogleAnalyticsCredentials
