"""Configuration settings for the connector proxy."""

from typing import Optional, Dict, Any
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # Service Configuration
    service_name: str = "connector-proxy"
    port: int = 3001
    environment: str = "development"
    debug: bool = False

    # Security
    secret_key: str
    encryption_key: Optional[str] = None
    encryption_salt: str = "connector-proxy"

    # Database
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "minitandem"
    redis_url: str = "redis://localhost:6379"

    # Auth Service
    auth_service_url: str = "http://localhost:8001"

    # Dashboard origin, used for the OAuth redirect URI
    app_origin: str = "http://localhost:8080"

    # Remote proxy used by the integration manager (in-process when unset)
    proxy_base_url: Optional[str] = None

    # OAuth Credentials
    # Slack
    slack_client_id: Optional[str] = None
    slack_client_secret: Optional[str] = None

    # Google (Drive and Analytics share one OAuth client)
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None

    # Notion
    notion_client_id: Optional[str] = None
    notion_client_secret: Optional[str] = None

    # Discord
    discord_client_id: Optional[str] = None
    discord_client_secret: Optional[str] = None

    # Zapier
    zapier_client_id: Optional[str] = None

    # Provider calls
    http_timeout: float = 30.0

    # OAuth flow
    oauth_state_ttl: int = 600  # 10 minutes
    oauth_completion_ttl: int = 600

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_default: int = 100
    rate_limit_window: int = 60  # seconds

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # CORS
    cors_origins: list[str] = ["http://localhost:8080", "https://minitandem.vercel.app"]

    test_message_prefix: str = "MiniTandem Test: "

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Integration specific configurations
INTEGRATION_CONFIGS: Dict[str, Dict[str, Any]] = {
    "slack": {
        "name": "Slack",
        "category": "communication",
        "description": "Send notifications and updates to your team channels",
        "icon": "💬",
        "setup_url": "https://api.slack.com/apps",
        "oauth_url": "https://slack.com/oauth/v2/authorize",
        "token_url": "https://slack.com/api/oauth.v2.access",
        "scopes": ["chat:write", "channels:read", "groups:read", "im:read", "mpim:read"],
        "client_id_env": "SLACK_CLIENT_ID",
        "client_secret_env": "SLACK_CLIENT_SECRET",
        "supports_exchange": True,
        "supports_send": True,
    },
    "google-drive": {
        "name": "Google Drive",
        "category": "storage",
        "description": "Store and sync files with your Google Drive account",
        "icon": "📁",
        "setup_url": "https://console.developers.google.com/",
        "oauth_url": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "scopes": [
            "https://www.googleapis.com/auth/drive.file",
            "https://www.googleapis.com/auth/drive.readonly",
        ],
        "auth_params": {"access_type": "offline", "prompt": "consent"},
        "client_id_env": "GOOGLE_CLIENT_ID",
        "client_secret_env": "GOOGLE_CLIENT_SECRET",
        "supports_exchange": True,
        "supports_send": False,
    },
    "notion": {
        "name": "Notion",
        "category": "productivity",
        "description": "Create and update pages in your Notion workspace",
        "icon": "📝",
        "setup_url": "https://www.notion.so/my-integrations",
        "oauth_url": "https://api.notion.com/v1/oauth/authorize",
        "token_url": "https://api.notion.com/v1/oauth/token",
        "scopes": [],  # Notion grants capabilities per integration, not per request
        "auth_params": {"owner": "user"},
        "client_id_env": "NOTION_CLIENT_ID",
        "client_secret_env": "NOTION_CLIENT_SECRET",
        "supports_exchange": True,
        "supports_send": True,
    },
    "zapier": {
        "name": "Zapier",
        "category": "productivity",
        "description": "Connect with 5000+ apps through automation workflows",
        "icon": "⚡",
        "setup_url": "https://zapier.com/apps",
        "oauth_url": "https://zapier.com/oauth/authorize",
        "token_url": None,
        "scopes": ["read", "write"],
        "client_id_env": "ZAPIER_CLIENT_ID",
        "client_secret_env": None,
        "supports_exchange": False,
        "supports_send": True,
    },
    "discord": {
        "name": "Discord",
        "category": "communication",
        "description": "Send messages to Discord servers and channels",
        "icon": "🎮",
        "setup_url": "https://discord.com/developers/applications",
        "oauth_url": "https://discord.com/api/oauth2/authorize",
        "token_url": "https://discord.com/api/oauth2/token",
        "scopes": ["identify", "bot"],
        "client_id_env": "DISCORD_CLIENT_ID",
        "client_secret_env": "DISCORD_CLIENT_SECRET",
        "supports_exchange": True,
        "supports_send": True,
    },
    "google-analytics": {
        "name": "Google Analytics",
        "category": "analytics",
        "description": "Track user behavior and onboarding funnel metrics",
        "icon": "📊",
        "setup_url": "https://analytics.google.com/",
        "oauth_url": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "scopes": ["https://www.googleapis.com/auth/analytics.readonly"],
        "auth_params": {"access_type": "offline", "prompt": "consent"},
        "client_id_env": "GOOGLE_CLIENT_ID",
        "client_secret_env": "GOOGLE_CLIENT_SECRET",
        "supports_exchange": True,
        "supports_send": False,
    },
}
