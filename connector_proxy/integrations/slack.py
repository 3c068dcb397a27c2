"""Slack connector implementation.

Slack's Web API answers HTTP 200 even when a call fails and reports the
outcome in the ``ok`` field, so every call here checks both.
"""

from typing import Dict, Any, Optional
import logging

from connector_proxy.integrations.base import BaseConnector, UpstreamError
from connector_proxy.integrations.registry import IntegrationRegistry
from connector_proxy.models import SlackCredentials
from connector_proxy.schemas.integration import ConnectorResult

logger = logging.getLogger(__name__)

SLACK_API_BASE = "https://slack.com/api"
DEFAULT_CHANNEL = "#general"


@IntegrationRegistry.register("slack")
class SlackConnector(BaseConnector):
    """Slack workspace connector (bot or user token)."""

    def _token(self, credentials: SlackCredentials) -> str:
        return self.require(credentials.bot_token or credentials.access_token, "token")

    async def _call(
        self,
        method: str,
        endpoint: str,
        token: Optional[str] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"

        response = await self.make_api_request(
            method, f"{SLACK_API_BASE}/{endpoint}", headers=headers, **kwargs
        )
        data = self.json_or_none(response) or {}

        if data.get("ok") is not True:
            error = data.get("error", "unknown_error")
            logger.warning(f"Slack {endpoint} failed: {error}")
            raise UpstreamError(error, self.provider, response.status_code)

        return data

    async def test_connection(self, credentials: SlackCredentials) -> ConnectorResult:
        """Validate the token with auth.test."""
        token = self._token(credentials)
        data = await self._call("GET", "auth.test", token, retry_on_timeout=True)
        return ConnectorResult(success=True, data=data)

    async def send_message(
        self,
        credentials: SlackCredentials,
        message: str,
        destination: Optional[str] = None,
    ) -> ConnectorResult:
        """Post a message with chat.postMessage."""
        token = self._token(credentials)
        channel = destination or credentials.channel_id or DEFAULT_CHANNEL
        data = await self._call(
            "POST",
            "chat.postMessage",
            token,
            json={"channel": channel, "text": message},
            headers={"Content-Type": "application/json"},
        )
        return ConnectorResult(success=True, data=data)

    async def exchange_code(self, code: str, redirect_uri: str) -> SlackCredentials:
        """Exchange an authorization code with oauth.v2.access."""
        client_id, client_secret = self.client_credentials()
        data = await self._call(
            "POST",
            "oauth.v2.access",
            data={
                "code": code,
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
        )

        authed_user = data.get("authed_user") or {}
        team = data.get("team") or {}
        webhook = data.get("incoming_webhook") or {}
        bot_token = data.get("bot_user_oauth_access_token")
        if not bot_token and data.get("token_type", "bot") == "bot":
            bot_token = data.get("access_token")

        logger.info(f"Slack OAuth exchange completed for team {team.get('id')}")
        return SlackCredentials(
            access_token=authed_user.get("access_token") or data.get("access_token"),
            bot_token=bot_token,
            workspace_id=team.get("id"),
            channel_id=webhook.get("channel_id"),
        )

    async def revoke(self, credentials: SlackCredentials) -> bool:
        """Revoke the token with auth.revoke."""
        data = await self._call("GET", "auth.revoke", self._token(credentials))
        return bool(data.get("revoked"))
