"""Main FastAPI application."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging

import httpx
import redis.asyncio as redis

from connector_proxy import __version__
from connector_proxy.core.config import Settings, get_settings
from connector_proxy.core.database import Database, database
from connector_proxy.core.errors import IntegrationError
from connector_proxy.api import connections, health, proxy
from connector_proxy.integrations import IntegrationRegistry
from connector_proxy.services import (
    ActivityLog,
    ConnectorService,
    CredentialStore,
    IntegrationManager,
    OAuthCompletionTracker,
    OAuthStateSigner,
    ProxyClient,
)
from connector_proxy.utils.logging import setup_logging

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

# Get settings
settings = get_settings()

LOCAL_PROXY_URL = "http://connector-proxy"


def init_services(
    app: FastAPI,
    config: Settings,
    db: Database,
    http_client: httpx.AsyncClient,
    redis_client: redis.Redis,
    proxy_http_client: Optional[httpx.AsyncClient] = None,
) -> None:
    """Wire the registry, proxy services and integration manager onto app.state.

    Without ``proxy_base_url`` the manager reaches the proxy routes of this
    same app through an in-process ASGI transport.
    """
    if proxy_http_client is None:
        if config.proxy_base_url:
            proxy_http_client = httpx.AsyncClient(
                base_url=config.proxy_base_url, timeout=config.http_timeout
            )
        else:
            proxy_http_client = httpx.AsyncClient(
                transport=httpx.ASGITransport(app=app),
                base_url=LOCAL_PROXY_URL,
                timeout=config.http_timeout,
            )

    registry = IntegrationRegistry(config)
    proxy_client = ProxyClient(proxy_http_client, config.secret_key)

    app.state.http_client = http_client
    app.state.redis = redis_client
    app.state.registry = registry
    app.state.connector_service = ConnectorService(registry, config, http_client)
    app.state.proxy_client = proxy_client
    app.state.integration_manager = IntegrationManager(
        registry=registry,
        store=CredentialStore(db, config),
        proxy=proxy_client,
        signer=OAuthStateSigner(config.secret_key, config.oauth_state_ttl),
        completions=OAuthCompletionTracker(redis_client, config.oauth_completion_ttl),
        activity=ActivityLog(db),
        settings=config,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info(
        f"Starting {settings.service_name} {__version__} "
        f"({settings.environment}) on port {settings.port}"
    )
    await database.connect(settings)

    http_client = httpx.AsyncClient(timeout=settings.http_timeout)
    redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    init_services(app, settings, database, http_client, redis_client)

    yield

    # Shutdown
    logger.info("Shutting down connector proxy...")
    await app.state.proxy_client.aclose()
    await http_client.aclose()
    await redis_client.aclose()
    await database.disconnect()


# Create FastAPI app
app = FastAPI(
    title="MiniTandem Connector Proxy",
    description="Server-side proxy and connection manager for third-party integrations",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(IntegrationError)
async def integration_error_handler(request: Request, exc: IntegrationError):
    """Render every integration failure as the proxy's error envelope."""
    logger.warning(
        f"{type(exc).__name__} on {request.url.path}: {exc.message}",
        extra={"provider": exc.provider, "status_code": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Handle malformed request bodies."""
    fields = ", ".join(
        ".".join(str(part) for part in error["loc"] if part != "body")
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": f"Invalid request: {fields}"},
    )


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(
    proxy.router,
    prefix="/api/integrations",
    tags=["proxy"],
)
app.include_router(
    connections.router,
    prefix="/api/connections",
    tags=["connections"],
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "connector_proxy.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
    )
