"""Provider connector implementations."""

from .base import (
    BaseConnector,
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
from .registry import IntegrationRegistry
from .slack import SlackConnector
from .google import GoogleDriveConnector, GoogleAnalyticsConnector
from .notion import NotionConnector
from .zapier import ZapierConnector
from .discord import DiscordConnector

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
    "IntegrationRegistry",
    "SlackConnector",
    "GoogleDriveConnector",
    "GoogleAnalyticsConnector",
    "NotionConnector",
    "ZapierConnector",
    "DiscordConnector",
]
