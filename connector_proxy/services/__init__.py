"""Services module for the connector proxy."""

from .activity_log import ActivityLog
from .connector_service import ConnectorService
from .credential_store import CredentialStore
from .integration_manager import IntegrationManager
from .oauth_completion import OAuthCompletion, OAuthCompletionStatus, OAuthCompletionTracker
from .oauth_state import OAuthState, OAuthStateSigner
from .proxy_client import ProxyClient

__all__ = [
    "ActivityLog",
    "ConnectorService",
    "CredentialStore",
    "IntegrationManager",
    "OAuthCompletion",
    "OAuthCompletionStatus",
    "OAuthCompletionTracker",
    "OAuthState",
    "OAuthStateSigner",
    "ProxyClient",
]
