"""User connection endpoints backed by the integration manager."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from typing import Any, Dict, List, Optional
import logging

from connector_proxy.api.dependencies import get_current_user, get_integration_manager
from connector_proxy.core.config import get_settings
from connector_proxy.services.oauth_completion import OAuthCompletion
from connector_proxy.services.oauth_state import OAuthState
from connector_proxy.schemas.integration import (
    ActivityResponse,
    ConnectRequest,
    IntegrationRecordResponse,
    OAuthCallbackRequest,
    OAuthInitResponse,
    OperationResponse,
    UserSendRequest,
    UserTestRequest,
)
from connector_proxy.services.integration_manager import IntegrationManager

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()


def _origin(request: Request) -> Optional[str]:
    """The caller's Origin header when it is an allowed dashboard origin."""
    origin = request.headers.get("origin")
    return origin if origin in settings.cors_origins else None


def _require_known(manager: IntegrationManager, integration_id: str) -> None:
    if manager.get_integration_config(integration_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unsupported integration: {integration_id}",
        )


# OAuth flow

@router.post("/oauth/callback", response_model=OperationResponse)
async def oauth_callback(
    callback: OAuthCallbackRequest,
    request: Request,
    manager: IntegrationManager = Depends(get_integration_manager),
):
    """Finish an OAuth flow; the signed state identifies the user."""
    state = OAuthState.parse(callback.state)
    connected = await manager.handle_oauth_callback(
        callback.code, callback.state, _origin(request)
    )
    return OperationResponse(
        success=connected,
        integration_id=state.integration_id,
        status=await manager.get_integration_status(state.integration_id, state.user_id),
    )


@router.get("/oauth/status", response_model=OAuthCompletion)
async def oauth_status(
    state: str = Query(...),
    wait: float = Query(0, ge=0, le=60),
    current_user: Dict[str, Any] = Depends(get_current_user),
    manager: IntegrationManager = Depends(get_integration_manager),
):
    """Completion flag of an OAuth flow, optionally waiting for it to finish."""
    parsed = OAuthState.parse(state)
    if parsed.user_id != current_user["id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this OAuth flow",
        )

    if wait:
        return await manager.wait_for_oauth_completion(state, timeout=wait)

    completion = await manager.get_oauth_completion(state)
    if completion is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="OAuth flow has not started",
        )
    return completion


# Records

@router.get("", response_model=List[IntegrationRecordResponse])
async def list_connections(
    current_user: Dict[str, Any] = Depends(get_current_user),
    manager: IntegrationManager = Depends(get_integration_manager),
):
    """List the user's integration records, without credentials."""
    records = await manager.list_integrations(current_user["id"])
    return [IntegrationRecordResponse.model_validate(record.model_dump()) for record in records]


@router.get("/activity", response_model=List[ActivityResponse])
async def list_activity(
    limit: int = Query(50, ge=1, le=200),
    current_user: Dict[str, Any] = Depends(get_current_user),
    manager: IntegrationManager = Depends(get_integration_manager),
):
    """Recent integration events for the user."""
    activities = await manager.get_activity(current_user["id"], limit)
    return [ActivityResponse.model_validate(activity.model_dump()) for activity in activities]


@router.get("/{integration_id}/status", response_model=OperationResponse)
async def connection_status(
    integration_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    manager: IntegrationManager = Depends(get_integration_manager),
):
    _require_known(manager, integration_id)
    current = await manager.get_integration_status(integration_id, current_user["id"])
    return OperationResponse(success=True, integration_id=integration_id, status=current)


@router.post("/{integration_id}/oauth/url", response_model=OAuthInitResponse)
async def initiate_oauth(
    integration_id: str,
    request: Request,
    current_user: Dict[str, Any] = Depends(get_current_user),
    manager: IntegrationManager = Depends(get_integration_manager),
):
    """Build the provider authorization URL for the user."""
    _require_known(manager, integration_id)
    result = manager.generate_oauth_url(integration_id, current_user["id"], _origin(request))
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"OAuth is not configured for {integration_id}",
        )
    return result


@router.post("/{integration_id}", response_model=OperationResponse)
async def connect(
    integration_id: str,
    request: ConnectRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    manager: IntegrationManager = Depends(get_integration_manager),
):
    """Connect with manually entered credentials."""
    _require_known(manager, integration_id)
    connected = await manager.connect_integration(
        integration_id, current_user["id"], request.credentials
    )
    return OperationResponse(
        success=connected,
        integration_id=integration_id,
        status=await manager.get_integration_status(integration_id, current_user["id"]),
    )


@router.delete("/{integration_id}", response_model=OperationResponse)
async def disconnect(
    integration_id: str,
    revoke: bool = Query(True),
    current_user: Dict[str, Any] = Depends(get_current_user),
    manager: IntegrationManager = Depends(get_integration_manager),
):
    """Disconnect an integration, revoking its token where supported."""
    _require_known(manager, integration_id)
    deleted = await manager.disconnect_integration(integration_id, current_user["id"], revoke)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Integration not connected",
        )
    return OperationResponse(
        success=True,
        integration_id=integration_id,
        status=await manager.get_integration_status(integration_id, current_user["id"]),
    )


@router.post("/{integration_id}/test", response_model=OperationResponse)
async def test_connection(
    integration_id: str,
    request: UserTestRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    manager: IntegrationManager = Depends(get_integration_manager),
):
    """Test explicit credentials, or re-validate the stored record."""
    _require_known(manager, integration_id)
    success = await manager.test_integration(
        integration_id, current_user["id"], request.credentials
    )
    return OperationResponse(
        success=success,
        integration_id=integration_id,
        status=await manager.get_integration_status(integration_id, current_user["id"]),
    )


@router.post("/{integration_id}/send", response_model=OperationResponse)
async def send_test_message(
    integration_id: str,
    request: UserSendRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    manager: IntegrationManager = Depends(get_integration_manager),
):
    """Send a test message through a connected integration."""
    _require_known(manager, integration_id)
    sent = await manager.send_test_message(integration_id, current_user["id"], request.message)
    return OperationResponse(success=sent, integration_id=integration_id)
