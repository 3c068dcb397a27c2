"""Base connector class and utilities."""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, Tuple
import logging
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import httpx

from connector_proxy.core.config import Settings
from connector_proxy.core.errors import (
    IntegrationError,
    ConfigurationError,
    CredentialValidationError,
    UnknownIntegrationError,
    UnsupportedOperationError,
    UpstreamError,
    NetworkError,
    OAuthStateError,
    RateLimitError,
    ProxyError,
)
from connector_proxy.models import BaseCredentials, IntegrationConfig
from connector_proxy.schemas.integration import ConnectorResult


logger = logging.getLogger(__name__)

__all__ = [
    "BaseConnector",
    "IntegrationError",
    "ConfigurationError",
    "CredentialValidationError",
    "UnknownIntegrationError",
    "UnsupportedOperationError",
    "UpstreamError",
    "NetworkError",
    "OAuthStateError",
    "RateLimitError",
    "ProxyError",
]


class BaseConnector(ABC):
    """Base class for all provider connectors.

    A connector performs single HTTP calls against one provider on behalf of
    the proxy. It never stores anything; callers get either a
    ``ConnectorResult`` or an ``IntegrationError``.
    """

    def __init__(
        self,
        config: IntegrationConfig,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self.settings = settings
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=settings.http_timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._owns_client:
            await self.http_client.aclose()

    @property
    def provider(self) -> str:
        return self.config.identifier

    # Abstract methods that must be implemented

    @abstractmethod
    async def test_connection(self, credentials: BaseCredentials) -> ConnectorResult:
        """Call the provider's "who am I" endpoint with the credentials."""
        pass

    # Optional operations (override where the provider supports them)

    async def send_message(
        self,
        credentials: BaseCredentials,
        message: str,
        destination: Optional[str] = None,
    ) -> ConnectorResult:
        """Deliver a message to the provider."""
        raise UnsupportedOperationError(
            f"Sending messages is not supported for {self.config.name}", self.provider
        )

    async def exchange_code(self, code: str, redirect_uri: str) -> BaseCredentials:
        """Exchange an authorization code for provider credentials."""
        raise UnsupportedOperationError(
            f"OAuth token exchange is not implemented for {self.config.name}", self.provider
        )

    async def revoke(self, credentials: BaseCredentials) -> bool:
        """Invalidate the credentials at the provider."""
        raise UnsupportedOperationError(
            f"Token revocation is not supported for {self.config.name}", self.provider
        )

    # Common utility methods

    def client_credentials(self) -> Tuple[str, str]:
        """Server-held OAuth client id and secret for this provider."""
        client_id = self._setting(self.config.client_id_env)
        if not client_id:
            raise ConfigurationError(self.config.client_id_env or "client id", self.provider)
        client_secret = self._setting(self.config.client_secret_env)
        if not client_secret:
            raise ConfigurationError(
                self.config.client_secret_env or "client secret", self.provider
            )
        return client_id, client_secret

    def _setting(self, env_name: Optional[str]) -> Optional[str]:
        if not env_name:
            return None
        return getattr(self.settings, env_name.lower(), None)

    def require(self, value: Optional[str], label: str) -> str:
        """Return value or fail locally, before any network call."""
        if not value:
            raise CredentialValidationError(f"No {label} provided", self.provider)
        return value

    async def make_api_request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        data: Optional[Dict[str, Any]] = None,
        auth: Optional[Tuple[str, str]] = None,
        retry_on_timeout: bool = False,
    ) -> httpx.Response:
        """Make one provider request and map failures onto the error taxonomy.

        Only idempotent calls should set ``retry_on_timeout``.
        """
        kwargs = {
            "headers": headers or {},
            "params": params,
            "json": json,
            "data": data,
        }
        if auth is not None:
            kwargs["auth"] = auth

        try:
            if retry_on_timeout:
                response = await self._request_with_retry(method, url, **kwargs)
            else:
                response = await self.http_client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{self.config.name} request timed out: {method} {url}")
            raise NetworkError(f"{self.config.name} did not respond in time", self.provider) from e
        except httpx.HTTPError as e:
            logger.error(f"{self.config.name} request failed: {type(e).__name__}")
            raise NetworkError(f"Could not reach {self.config.name}", self.provider) from e

        if not response.is_success:
            message = self.extract_error(response)
            logger.warning(
                f"{self.config.name} returned {response.status_code}: {message}"
            )
            raise UpstreamError(message, self.provider, response.status_code)

        return response

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.TimeoutException),
        reraise=True,
    )
    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        return await self.http_client.request(method, url, **kwargs)

    def extract_error(self, response: httpx.Response) -> str:
        """Provider error message, verbatim where the body carries one."""
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            for key in ("error_description", "message", "error"):
                value = body.get(key)
                if isinstance(value, str) and value:
                    return value
                if isinstance(value, dict) and value.get("message"):
                    return value["message"]

        text = response.text.strip()
        return text or f"HTTP {response.status_code} {response.reason_phrase}"

    @staticmethod
    def json_or_none(response: httpx.Response) -> Optional[Any]:
        try:
            return response.json()
        except ValueError:
            return None
