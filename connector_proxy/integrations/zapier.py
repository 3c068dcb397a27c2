"""Zapier connector implementation.

Zapier's partner OAuth is not available to us, so there is no code exchange:
credentials are entered manually and ``exchange_code`` stays unimplemented.
"""

from typing import Optional
import logging

from connector_proxy.integrations.base import BaseConnector, CredentialValidationError
from connector_proxy.integrations.registry import IntegrationRegistry
from connector_proxy.models import ZapierCredentials
from connector_proxy.schemas.integration import ConnectorResult

logger = logging.getLogger(__name__)

ZAPIER_API_BASE = "https://api.zapier.com/v1"
ZAPIER_HOOK_PREFIX = "https://hooks.zapier.com/"


@IntegrationRegistry.register("zapier")
class ZapierConnector(BaseConnector):
    """Zapier connector."""

    async def test_connection(self, credentials: ZapierCredentials) -> ConnectorResult:
        token = self.require(credentials.access_token, "access token")
        response = await self.make_api_request(
            "GET",
            f"{ZAPIER_API_BASE}/me",
            headers={"Authorization": f"Bearer {token}"},
            retry_on_timeout=True,
        )
        return ConnectorResult(success=True, data=self.json_or_none(response))

    async def send_message(
        self,
        credentials: ZapierCredentials,
        message: str,
        destination: Optional[str] = None,
    ) -> ConnectorResult:
        """Trigger the stored catch hook with the message."""
        webhook_url = self.require(credentials.webhook_url, "webhook URL")
        # Only Zapier's own hook host; the proxy must not POST to arbitrary URLs
        if not webhook_url.startswith(ZAPIER_HOOK_PREFIX):
            raise CredentialValidationError(
                f"Webhook URL must start with {ZAPIER_HOOK_PREFIX}", self.provider
            )

        response = await self.make_api_request("POST", webhook_url, json={"message": message})
        return ConnectorResult(success=True, data=self.json_or_none(response))
