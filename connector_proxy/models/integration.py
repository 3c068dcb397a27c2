"""Integration models."""

from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum

from connector_proxy.models.credentials import Credentials


class IntegrationCategory(str, Enum):
    """Registry grouping shown in the dashboard."""
    COMMUNICATION = "communication"
    STORAGE = "storage"
    PRODUCTIVITY = "productivity"
    ANALYTICS = "analytics"


class IntegrationStatus(str, Enum):
    """Integration connection status."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"
    PENDING = "pending"


class IntegrationConfig(BaseModel):
    """Static description of a supported integration."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    name: str
    category: IntegrationCategory
    description: str = ""
    icon: Optional[str] = None
    setup_url: Optional[str] = None
    oauth_url: Optional[str] = None
    token_url: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)
    auth_params: Dict[str, str] = Field(default_factory=dict)
    client_id: Optional[str] = None
    client_id_env: Optional[str] = None
    client_secret_env: Optional[str] = None
    supports_exchange: bool = False
    supports_send: bool = False


def record_key(user_id: str, integration_id: str) -> str:
    """Document id of the single record a user holds for an integration."""
    return f"{user_id}:{integration_id}"


class IntegrationRecord(BaseModel):
    """A user's connection to one integration."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id")
    user_id: str
    integration_id: str
    name: str
    category: IntegrationCategory
    status: IntegrationStatus = IntegrationStatus.PENDING

    # Authentication
    credentials: Credentials

    # Metadata
    connected_at: datetime = Field(default_factory=datetime.utcnow)
    last_activity: datetime = Field(default_factory=datetime.utcnow)
    last_validated_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @property
    def key(self) -> str:
        return record_key(self.user_id, self.integration_id)


class ActivityRecord(BaseModel):
    """Entry in a user's activity feed."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id")
    user_id: str
    action: str
    integration_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
