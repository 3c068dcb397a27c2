"""Connector proxy endpoints.

These routes hold no state: each one forwards a single call to a provider
using the credentials in the request body and the server-held OAuth secrets.
Failures are rendered by the application's ``IntegrationError`` handler.
"""

from fastapi import APIRouter, Depends
from typing import List
import logging

from connector_proxy.api.dependencies import (
    enforce_rate_limit,
    get_connector_service,
    get_registry,
)
from connector_proxy.integrations.registry import IntegrationRegistry
from connector_proxy.schemas.integration import (
    ConnectionTestRequest,
    ConnectorResult,
    IntegrationConfigResponse,
    OAuthTokenRequest,
    OAuthTokenResponse,
    RevokeRequest,
    SendMessageRequest,
)
from connector_proxy.services.connector_service import ConnectorService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/test/{provider}",
    response_model=ConnectorResult,
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_rate_limit)],
)
async def test_connection(
    provider: str,
    request: ConnectionTestRequest,
    service: ConnectorService = Depends(get_connector_service),
):
    """Validate credentials against the provider's identity endpoint."""
    logger.info(f"Testing {provider} connection")
    return await service.test_connection(provider, request.credentials)


@router.post(
    "/send/{provider}",
    response_model=ConnectorResult,
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_rate_limit)],
)
async def send_message(
    provider: str,
    request: SendMessageRequest,
    service: ConnectorService = Depends(get_connector_service),
):
    """Deliver a message through the provider."""
    logger.info(f"Sending message via {provider}")
    return await service.send_message(
        provider, request.credentials, request.message, request.destination
    )


@router.post(
    "/revoke/{provider}",
    response_model=ConnectorResult,
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_rate_limit)],
)
async def revoke_credentials(
    provider: str,
    request: RevokeRequest,
    service: ConnectorService = Depends(get_connector_service),
):
    """Invalidate credentials at the provider."""
    revoked = await service.revoke(provider, request.credentials)
    return ConnectorResult(success=revoked)


@router.post(
    "/oauth/token",
    response_model=OAuthTokenResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def exchange_token(
    request: OAuthTokenRequest,
    service: ConnectorService = Depends(get_connector_service),
):
    """Exchange an authorization code for provider credentials."""
    logger.info(f"Exchanging OAuth code for {request.integration_id}")
    credentials = await service.exchange_code(
        request.integration_id, request.code, request.redirect_uri
    )
    return OAuthTokenResponse(credentials=credentials.to_wire())


@router.get(
    "",
    response_model=List[IntegrationConfigResponse],
    response_model_by_alias=True,
)
async def list_available_integrations(
    registry: IntegrationRegistry = Depends(get_registry),
):
    """List every supported integration."""
    return [
        IntegrationConfigResponse.model_validate(config.model_dump())
        for config in registry.list()
    ]


@router.get(
    "/{integration_id}",
    response_model=IntegrationConfigResponse,
    response_model_by_alias=True,
)
async def get_available_integration(
    integration_id: str,
    registry: IntegrationRegistry = Depends(get_registry),
):
    """Get one integration's public configuration."""
    config = registry.require(integration_id)
    return IntegrationConfigResponse.model_validate(config.model_dump())
