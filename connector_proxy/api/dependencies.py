"""API dependencies."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Dict, Any
import httpx
import logging

from connector_proxy.core.config import get_settings
from connector_proxy.core.errors import RateLimitError
from connector_proxy.integrations.registry import IntegrationRegistry
from connector_proxy.services.connector_service import ConnectorService
from connector_proxy.services.integration_manager import IntegrationManager
from connector_proxy.services.proxy_client import SIGNATURE_HEADER, USER_HEADER
from connector_proxy.utils.crypto import verify_signature
from connector_proxy.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)
settings = get_settings()

# Security
security = HTTPBearer()


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Dict[str, Any]:
    """Get current user from auth service."""
    token = credentials.credentials

    try:
        response = await request.app.state.http_client.get(
            f"{settings.auth_service_url}/api/v1/users/me",
            headers={"Authorization": f"Bearer {token}"},
        )
    except httpx.RequestError as e:
        logger.error(f"Auth service request failed: {type(e).__name__}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable",
        )

    if response.status_code != 200:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = response.json()
    if "id" not in user:
        user["id"] = str(user.get("_id") or user.get("uid") or "")
    return user


# Service dependencies
def get_registry(request: Request) -> IntegrationRegistry:
    return request.app.state.registry


def get_connector_service(request: Request) -> ConnectorService:
    return request.app.state.connector_service


def get_integration_manager(request: Request) -> IntegrationManager:
    return request.app.state.integration_manager


def get_rate_limiter(request: Request) -> RateLimiter:
    return RateLimiter(request.app.state.redis, prefix="proxy_rate_limit")


def rate_limit_subject(request: Request) -> str:
    """Who a proxy call counts against.

    Calls the integration manager makes for a user carry a signed user id;
    everything else is counted per client address.
    """
    user_id = request.headers.get(USER_HEADER)
    signature = request.headers.get(SIGNATURE_HEADER)
    if user_id and signature and verify_signature(user_id, signature, settings.secret_key):
        return f"user:{user_id}"
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    """Sliding-window limit per caller and provider on proxy calls."""
    if not settings.rate_limit_enabled:
        return

    provider = request.path_params.get("provider", "oauth")
    subject = rate_limit_subject(request)
    allowed = await limiter.check_rate_limit(
        f"{subject}:{provider}",
        limit=settings.rate_limit_default,
        window=settings.rate_limit_window,
    )
    if not allowed:
        logger.warning(f"Rate limit exceeded for {subject} on {provider}")
        raise RateLimitError("Rate limit exceeded, try again later", provider)
