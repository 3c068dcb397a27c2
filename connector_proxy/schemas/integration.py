"""Integration API schemas."""

from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from connector_proxy.models import IntegrationCategory, IntegrationStatus


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, as the dashboard does."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConnectorResult(BaseModel):
    """Normalized outcome of a provider call."""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None


class ConnectionTestRequest(CamelModel):
    """Body of POST /api/integrations/test/{provider}."""
    credentials: Dict[str, Any] = Field(default_factory=dict)


class SendMessageRequest(CamelModel):
    """Body of POST /api/integrations/send/{provider}."""
    credentials: Dict[str, Any] = Field(default_factory=dict)
    message: str
    channel: Optional[str] = None
    channel_id: Optional[str] = None
    database_id: Optional[str] = None

    @property
    def destination(self) -> Optional[str]:
        return self.channel or self.channel_id or self.database_id


class RevokeRequest(CamelModel):
    """Body of POST /api/integrations/revoke/{provider}."""
    credentials: Dict[str, Any] = Field(default_factory=dict)


class OAuthTokenRequest(CamelModel):
    """Body of POST /api/integrations/oauth/token."""
    integration_id: str
    code: str
    redirect_uri: str


class OAuthTokenResponse(BaseModel):
    """Exchanged credentials in wire (camelCase) form."""
    success: bool = True
    credentials: Dict[str, Any]


class IntegrationConfigResponse(CamelModel):
    """Public registry entry; server-side env var names are not exposed."""
    identifier: str
    name: str
    category: IntegrationCategory
    description: str
    icon: Optional[str] = None
    setup_url: Optional[str] = None
    oauth_url: Optional[str] = None
    scopes: List[str]
    client_id: Optional[str] = None
    supports_exchange: bool
    supports_send: bool


class IntegrationRecordResponse(CamelModel):
    """A user's integration record without its credentials."""
    integration_id: str
    name: str
    category: IntegrationCategory
    status: IntegrationStatus
    connected_at: datetime
    last_activity: datetime
    last_validated_at: Optional[datetime] = None
    error_message: Optional[str] = None


class ConnectRequest(CamelModel):
    """Manual credential entry for a user connection."""
    credentials: Dict[str, Any] = Field(default_factory=dict)


class UserTestRequest(CamelModel):
    """Optional explicit credentials for a user-scoped test."""
    credentials: Optional[Dict[str, Any]] = None


class UserSendRequest(CamelModel):
    message: str


class OAuthInitResponse(CamelModel):
    """OAuth initialization response."""
    authorization_url: str
    state: str


class OAuthCallbackRequest(CamelModel):
    """OAuth callback request."""
    code: str
    state: str


class OperationResponse(CamelModel):
    """Boolean outcome of a manager operation."""
    success: bool
    integration_id: str
    status: Optional[IntegrationStatus] = None


class ActivityResponse(CamelModel):
    """Entry in the user's activity feed."""
    action: str
    integration_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime
