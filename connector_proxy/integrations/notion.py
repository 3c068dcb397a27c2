"""Notion connector implementation."""

from typing import Dict, Optional
import logging

from connector_proxy.integrations.base import BaseConnector
from connector_proxy.integrations.registry import IntegrationRegistry
from connector_proxy.models import NotionCredentials
from connector_proxy.schemas.integration import ConnectorResult

logger = logging.getLogger(__name__)

NOTION_API_BASE = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"


@IntegrationRegistry.register("notion")
class NotionConnector(BaseConnector):
    """Notion workspace connector (internal integration key or OAuth token)."""

    def _headers(self, credentials: NotionCredentials) -> Dict[str, str]:
        api_key = self.require(credentials.api_key, "API key")
        return {
            "Authorization": f"Bearer {api_key}",
            "Notion-Version": NOTION_VERSION,
        }

    async def test_connection(self, credentials: NotionCredentials) -> ConnectorResult:
        response = await self.make_api_request(
            "GET",
            f"{NOTION_API_BASE}/users/me",
            headers=self._headers(credentials),
            retry_on_timeout=True,
        )
        return ConnectorResult(success=True, data=self.json_or_none(response))

    async def send_message(
        self,
        credentials: NotionCredentials,
        message: str,
        destination: Optional[str] = None,
    ) -> ConnectorResult:
        """Create a page under the database, using the message as its title."""
        headers = self._headers(credentials)
        database_id = self.require(destination or credentials.database_id, "database ID")
        headers["Content-Type"] = "application/json"

        response = await self.make_api_request(
            "POST",
            f"{NOTION_API_BASE}/pages",
            headers=headers,
            json={
                "parent": {"database_id": database_id},
                "properties": {
                    "title": {
                        "title": [{"text": {"content": message}}],
                    },
                },
            },
        )
        return ConnectorResult(success=True, data=self.json_or_none(response))

    async def exchange_code(self, code: str, redirect_uri: str) -> NotionCredentials:
        """Exchange an authorization code; Notion wants HTTP basic client auth."""
        client_id, client_secret = self.client_credentials()
        response = await self.make_api_request(
            "POST",
            self.config.token_url or f"{NOTION_API_BASE}/oauth/token",
            auth=(client_id, client_secret),
            json={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
        token_data = response.json()

        logger.info(f"Notion OAuth exchange completed for workspace {token_data.get('workspace_id')}")
        return NotionCredentials(
            api_key=token_data.get("access_token"),
            workspace_id=token_data.get("workspace_id"),
        )
