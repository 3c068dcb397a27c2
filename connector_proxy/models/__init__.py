"""Data models for the connector proxy."""

from .credentials import (
    BaseCredentials,
    Credentials,
    CREDENTIAL_TYPES,
    SlackCredentials,
    GoogleDriveCredentials,
    GoogleAnalyticsCredentials,
    NotionCredentials,
    ZapierCredentials,
    DiscordCredentials,
    parse_credentials,
)
from .integration import (
    ActivityRecord,
    IntegrationCategory,
    IntegrationConfig,
    IntegrationRecord,
    IntegrationStatus,
    record_key,
)

__all__ = [
    "BaseCredentials",
    "Credentials",
    "CREDENTIAL_TYPES",
    "SlackCredentials",
    "GoogleDriveCredentials",
    "GoogleAnalyticsCredentials",
    "NotionCredentials",
    "ZapierCredentials",
    "DiscordCredentials",
    "parse_credentials",
    "ActivityRecord",
    "IntegrationCategory",
    "IntegrationConfig",
    "IntegrationRecord",
    "IntegrationStatus",
    "record_key",
]
