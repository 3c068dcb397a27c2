"""Integration registry: static metadata plus connector implementations."""

from typing import Dict, Type, Optional, List

from connector_proxy.core.config import Settings, INTEGRATION_CONFIGS
from connector_proxy.core.errors import UnknownIntegrationError
from connector_proxy.integrations.base import BaseConnector
from connector_proxy.models import IntegrationConfig


class IntegrationRegistry:
    """Lookup table of supported integrations.

    Connector classes register themselves at import time through the
    ``register`` decorator. Instances hold the immutable ``IntegrationConfig``
    entries, resolved once against the settings they were built with.
    """

    _connectors: Dict[str, Type[BaseConnector]] = {}

    def __init__(self, settings: Settings):
        self._configs: Dict[str, IntegrationConfig] = {
            identifier: self._build_config(identifier, raw, settings)
            for identifier, raw in INTEGRATION_CONFIGS.items()
        }

    @staticmethod
    def _build_config(identifier: str, raw: dict, settings: Settings) -> IntegrationConfig:
        client_id_env = raw.get("client_id_env")
        client_id = getattr(settings, client_id_env.lower(), None) if client_id_env else None
        return IntegrationConfig(identifier=identifier, client_id=client_id, **raw)

    @classmethod
    def register(cls, identifier: str):
        """Decorator to register a connector class."""
        def decorator(connector_class: Type[BaseConnector]):
            cls._connectors[identifier] = connector_class
            return connector_class
        return decorator

    @classmethod
    def connector_class(cls, identifier: str) -> Optional[Type[BaseConnector]]:
        """Get connector class by identifier."""
        return cls._connectors.get(identifier)

    def get(self, identifier: str) -> Optional[IntegrationConfig]:
        """Get integration config, or None for unknown identifiers."""
        return self._configs.get(identifier)

    def require(self, identifier: str) -> IntegrationConfig:
        """Get integration config or raise UnknownIntegrationError."""
        if identifier not in self or identifier not in self._connectors:
            raise UnknownIntegrationError(identifier)
        return self._configs[identifier]

    def list(self) -> List[IntegrationConfig]:
        """All integration configs in registry order."""
        return list(self._configs.values())

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._configs
