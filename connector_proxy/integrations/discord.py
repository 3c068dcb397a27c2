"""Discord connector implementation."""

from typing import Optional
import logging

from connector_proxy.integrations.base import BaseConnector
from connector_proxy.integrations.registry import IntegrationRegistry
from connector_proxy.models import DiscordCredentials
from connector_proxy.schemas.integration import ConnectorResult

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"


@IntegrationRegistry.register("discord")
class DiscordConnector(BaseConnector):
    """Discord connector: user OAuth token for identity, bot token for messages."""

    async def test_connection(self, credentials: DiscordCredentials) -> ConnectorResult:
        if credentials.access_token:
            authorization = f"Bearer {credentials.access_token}"
        else:
            authorization = f"Bot {self.require(credentials.bot_token, 'access token')}"

        response = await self.make_api_request(
            "GET",
            f"{DISCORD_API_BASE}/users/@me",
            headers={"Authorization": authorization},
            retry_on_timeout=True,
        )
        return ConnectorResult(success=True, data=self.json_or_none(response))

    async def send_message(
        self,
        credentials: DiscordCredentials,
        message: str,
        destination: Optional[str] = None,
    ) -> ConnectorResult:
        bot_token = self.require(credentials.bot_token, "bot token")
        channel_id = self.require(destination or credentials.channel_id, "channel ID")

        response = await self.make_api_request(
            "POST",
            f"{DISCORD_API_BASE}/channels/{channel_id}/messages",
            headers={
                "Authorization": f"Bot {bot_token}",
                "Content-Type": "application/json",
            },
            json={"content": message},
        )
        return ConnectorResult(success=True, data=self.json_or_none(response))

    async def exchange_code(self, code: str, redirect_uri: str) -> DiscordCredentials:
        client_id, client_secret = self.client_credentials()
        response = await self.make_api_request(
            "POST",
            self.config.token_url,
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        token_data = response.json()

        logger.info("Discord OAuth exchange completed")
        return DiscordCredentials(
            access_token=token_data.get("access_token"),
            refresh_token=token_data.get("refresh_token"),
        )
