"""Integration error hierarchy.

Every failure in the proxy is one of these. The HTTP layer renders all of
them as ``{"success": false, "error": <message>}`` with ``status_code``.
"""

from typing import Optional


class IntegrationError(Exception):
    """Base integration error."""

    status_code: int = 502

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider


class ConfigurationError(IntegrationError):
    """A server-side setting the operation needs is missing."""

    status_code = 500

    def __init__(self, variable: str, provider: Optional[str] = None):
        super().__init__(f"Missing required configuration: {variable}", provider)
        self.variable = variable


class CredentialValidationError(IntegrationError):
    """Credential bag is empty, malformed or lacks a required field."""

    status_code = 400


class UnknownIntegrationError(IntegrationError):
    """Identifier is not in the registry."""

    status_code = 400

    def __init__(self, identifier: str):
        super().__init__(f"Unsupported integration: {identifier}", identifier)


class UnsupportedOperationError(IntegrationError):
    """Provider exists but does not implement the requested operation."""

    status_code = 400


class UpstreamError(IntegrationError):
    """Provider rejected the call; message is the provider's own."""

    status_code = 502

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        upstream_status: Optional[int] = None,
    ):
        super().__init__(message, provider)
        self.upstream_status = upstream_status


class NetworkError(IntegrationError):
    """Provider could not be reached."""

    status_code = 502


class OAuthStateError(IntegrationError):
    """OAuth state is malformed, forged, expired or already used."""

    status_code = 400


class RateLimitError(IntegrationError):
    """Rate limit exceeded."""

    status_code = 429


class ProxyError(IntegrationError):
    """The proxy answered a manager call with ``success: false``."""

    status_code = 502
