"""HTTP client for the proxy's public surface, used by the integration manager."""

from typing import Any, Dict, Optional
import logging

import httpx

from connector_proxy.core.errors import NetworkError, ProxyError
from connector_proxy.models import BaseCredentials, parse_credentials
from connector_proxy.schemas.integration import ConnectorResult
from connector_proxy.utils.crypto import sign

logger = logging.getLogger(__name__)

# Identify the end user behind a manager-originated call, so proxy rate
# limits apply per user rather than to the manager's own address.
USER_HEADER = "X-Connector-User"
SIGNATURE_HEADER = "X-Connector-Signature"


class ProxyClient:
    """Calls /api/integrations/* on a proxy, local (ASGI) or remote."""

    def __init__(self, http_client: httpx.AsyncClient, secret_key: Optional[str] = None):
        self.http_client = http_client
        self.secret_key = secret_key

    async def aclose(self) -> None:
        await self.http_client.aclose()

    def _headers(self, user_id: Optional[str]) -> Dict[str, str]:
        if not user_id or not self.secret_key:
            return {}
        return {USER_HEADER: user_id, SIGNATURE_HEADER: sign(user_id, self.secret_key)}

    async def _post(
        self,
        path: str,
        payload: Dict[str, Any],
        provider: str,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self.http_client.post(path, json=payload, headers=self._headers(user_id))
        except httpx.HTTPError as e:
            logger.error(f"Proxy request {path} failed: {type(e).__name__}")
            raise NetworkError("Integration proxy is unreachable", provider) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            body = {"success": False, "error": f"Unexpected proxy response ({response.status_code})"}
        if not response.is_success and body.get("success") is not False:
            body = {"success": False, "error": body.get("error") or response.reason_phrase}

        return body

    async def test_connection(
        self,
        provider: str,
        credentials: BaseCredentials,
        *,
        user_id: Optional[str] = None,
    ) -> ConnectorResult:
        body = await self._post(
            f"/api/integrations/test/{provider}",
            {"credentials": credentials.to_wire()},
            provider,
            user_id,
        )
        return ConnectorResult(**body)

    async def send_message(
        self,
        provider: str,
        credentials: BaseCredentials,
        message: str,
        destination: Optional[str] = None,
        *,
        user_id: Optional[str] = None,
    ) -> ConnectorResult:
        payload: Dict[str, Any] = {"credentials": credentials.to_wire(), "message": message}
        if destination:
            payload["channel"] = destination
        body = await self._post(f"/api/integrations/send/{provider}", payload, provider, user_id)
        return ConnectorResult(**body)

    async def revoke(
        self,
        provider: str,
        credentials: BaseCredentials,
        *,
        user_id: Optional[str] = None,
    ) -> ConnectorResult:
        body = await self._post(
            f"/api/integrations/revoke/{provider}",
            {"credentials": credentials.to_wire()},
            provider,
            user_id,
        )
        return ConnectorResult(**body)

    async def exchange_code(
        self,
        provider: str,
        code: str,
        redirect_uri: str,
        *,
        user_id: Optional[str] = None,
    ) -> BaseCredentials:
        """Exchange a code through the proxy; raises ProxyError on failure."""
        body = await self._post(
            "/api/integrations/oauth/token",
            {"integrationId": provider, "code": code, "redirectUri": redirect_uri},
            provider,
            user_id,
        )
        if not body.get("success"):
            raise ProxyError(body.get("error") or "Token exchange failed", provider)
        return parse_credentials(provider, body.get("credentials"))
