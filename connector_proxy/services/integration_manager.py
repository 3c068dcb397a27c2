"""Integration manager: per-user connection lifecycle.

Every record follows one state machine::

    (none) -> pending -> connected | error
    connected | error -> connected | error   (re-test)
    any -> (none)                            (disconnect)

A record only becomes ``connected`` after the proxy has validated its
credentials against the provider.
"""

from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode
import logging

from connector_proxy.core.config import Settings
from connector_proxy.core.errors import IntegrationError, OAuthStateError
from connector_proxy.integrations.registry import IntegrationRegistry
from connector_proxy.models import (
    ActivityRecord,
    BaseCredentials,
    IntegrationConfig,
    IntegrationRecord,
    IntegrationStatus,
    parse_credentials,
)
from connector_proxy.schemas.integration import OAuthInitResponse
from connector_proxy.services.activity_log import ActivityLog
from connector_proxy.services.credential_store import CredentialStore
from connector_proxy.services.oauth_completion import OAuthCompletion, OAuthCompletionTracker
from connector_proxy.services.oauth_state import OAuthStateSigner
from connector_proxy.services.proxy_client import ProxyClient

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/integrations/callback"

CredentialsInput = Union[BaseCredentials, Mapping[str, Any]]


class IntegrationManager:
    """Orchestrates OAuth, validation and persistence of user integrations."""

    def __init__(
        self,
        registry: IntegrationRegistry,
        store: CredentialStore,
        proxy: ProxyClient,
        signer: OAuthStateSigner,
        completions: OAuthCompletionTracker,
        activity: ActivityLog,
        settings: Settings,
    ):
        self.registry = registry
        self.store = store
        self.proxy = proxy
        self.signer = signer
        self.completions = completions
        self.activity = activity
        self.settings = settings

    def redirect_uri(self, origin: Optional[str] = None) -> str:
        return f"{(origin or self.settings.app_origin).rstrip('/')}{CALLBACK_PATH}"

    def get_available_integrations(self) -> List[IntegrationConfig]:
        return self.registry.list()

    def get_integration_config(self, integration_id: str) -> Optional[IntegrationConfig]:
        return self.registry.get(integration_id)

    # OAuth flow

    def generate_oauth_url(
        self,
        integration_id: str,
        user_id: str,
        origin: Optional[str] = None,
    ) -> Optional[OAuthInitResponse]:
        """Authorization URL and its signed state, or None if OAuth is unavailable."""
        config = self.registry.get(integration_id)
        if not config or not config.oauth_url or not config.client_id:
            return None

        state = self.signer.issue(integration_id, user_id)
        params = {
            "client_id": config.client_id,
            "redirect_uri": self.redirect_uri(origin),
            "scope": " ".join(config.scopes),
            "state": state,
            "response_type": "code",
            **config.auth_params,
        }
        return OAuthInitResponse(
            authorization_url=f"{config.oauth_url}?{urlencode(params)}",
            state=state,
        )

    async def handle_oauth_callback(
        self,
        code: str,
        state: str,
        origin: Optional[str] = None,
    ) -> bool:
        """Finish an OAuth flow: exchange the code, then connect.

        Raises OAuthStateError for forged, expired or replayed states.
        Integration failures are recorded on the completion flag and return
        False. Anything else is recorded as a failure too, then re-raised.
        """
        parsed = self.signer.verify(state)
        integration_id, user_id = parsed.integration_id, parsed.user_id

        if not await self.completions.claim(state, integration_id):
            raise OAuthStateError("OAuth state has already been used", integration_id)

        try:
            credentials = await self.proxy.exchange_code(
                integration_id, code, self.redirect_uri(origin), user_id=user_id
            )
            connected, error = await self._connect(integration_id, user_id, credentials)
        except IntegrationError as e:
            logger.error(f"OAuth callback for {integration_id} failed: {e}")
            await self.completions.complete(state, integration_id, False, str(e))
            return False
        except Exception:
            logger.exception(f"Unexpected error completing OAuth for {integration_id}")
            await self.completions.complete(
                state, integration_id, False, "Unexpected error while connecting"
            )
            raise

        await self.completions.complete(state, integration_id, connected, error)
        return connected

    async def get_oauth_completion(self, state: str) -> Optional[OAuthCompletion]:
        return await self.completions.get(state)

    async def wait_for_oauth_completion(self, state: str, timeout: float = 60.0) -> OAuthCompletion:
        return await self.completions.wait_for(state, timeout=timeout)

    # Connection lifecycle

    def _coerce(self, integration_id: str, credentials: Optional[CredentialsInput]) -> BaseCredentials:
        return parse_credentials(integration_id, credentials)

    async def connect_integration(
        self,
        integration_id: str,
        user_id: str,
        credentials: Optional[CredentialsInput],
    ) -> bool:
        """Store credentials as pending, validate them, then settle the status."""
        success, _ = await self._connect(integration_id, user_id, credentials)
        return success

    async def _connect(
        self,
        integration_id: str,
        user_id: str,
        credentials: Optional[CredentialsInput],
    ) -> Tuple[bool, Optional[str]]:
        config = self.registry.get(integration_id)
        if config is None:
            logger.warning(f"Refusing to connect unknown integration {integration_id}")
            return False, f"Unsupported integration: {integration_id}"

        parsed = self._coerce(integration_id, credentials)
        if parsed.is_empty():
            logger.warning(f"No valid credentials provided for integration {integration_id}")
            return False, "No credentials provided"

        now = datetime.utcnow()
        record = IntegrationRecord(
            user_id=user_id,
            integration_id=integration_id,
            name=config.name,
            category=config.category,
            status=IntegrationStatus.PENDING,
            credentials=parsed,
            connected_at=now,
            last_activity=now,
        )
        await self.store.save(record)

        try:
            result = await self.proxy.test_connection(integration_id, parsed, user_id=user_id)
            success, error = result.success, result.error
        except IntegrationError as e:
            success, error = False, str(e)

        record.status = IntegrationStatus.CONNECTED if success else IntegrationStatus.ERROR
        record.error_message = None if success else error
        record.last_validated_at = datetime.utcnow() if success else None
        await self.store.save(record)

        await self.activity.record(
            user_id,
            "integration_connected" if success else "integration_failed",
            integration_id,
            {"error": error} if not success else None,
        )
        return success, error

    async def disconnect_integration(
        self,
        integration_id: str,
        user_id: str,
        revoke: bool = True,
    ) -> bool:
        """Delete the record, revoking the provider token first where possible."""
        record = await self.store.get(user_id, integration_id)
        if record is None:
            return False

        if revoke:
            try:
                result = await self.proxy.revoke(integration_id, record.credentials, user_id=user_id)
                if not result.success:
                    logger.info(f"Token for {integration_id} not revoked: {result.error}")
            except IntegrationError as e:
                logger.warning(f"Token revocation for {integration_id} failed: {e}")

        deleted = await self.store.delete(user_id, integration_id)
        if deleted:
            await self.activity.record(user_id, "integration_disconnected", integration_id)
        return deleted

    async def get_integration_status(self, integration_id: str, user_id: str) -> IntegrationStatus:
        record = await self.store.get(user_id, integration_id)
        return record.status if record else IntegrationStatus.DISCONNECTED

    async def list_integrations(self, user_id: str) -> List[IntegrationRecord]:
        return await self.store.list_for_user(user_id)

    async def test_integration(
        self,
        integration_id: str,
        user_id: str,
        credentials: Optional[CredentialsInput] = None,
    ) -> bool:
        """Validate explicit credentials, or re-validate the stored record.

        Stored records are tested whatever their status, so pending and
        errored records can recover; the outcome is written back.
        """
        if self.registry.get(integration_id) is None:
            return False

        stored = credentials is None
        if stored:
            record = await self.store.get(user_id, integration_id)
            if record is None:
                logger.info(f"Integration {integration_id} is not connected, skipping test")
                return False
            parsed = record.credentials
        else:
            parsed = self._coerce(integration_id, credentials)

        if parsed.is_empty():
            logger.info(f"No credentials available for {integration_id}")
            return False

        try:
            result = await self.proxy.test_connection(integration_id, parsed, user_id=user_id)
            success, error = result.success, result.error
        except IntegrationError as e:
            success, error = False, str(e)

        if stored:
            await self.store.update_status(
                user_id,
                integration_id,
                IntegrationStatus.CONNECTED if success else IntegrationStatus.ERROR,
                None if success else error,
            )
            await self.activity.record(
                user_id, "integration_tested", integration_id, {"success": success}
            )
        return success

    async def send_test_message(self, integration_id: str, user_id: str, message: str) -> bool:
        """Send a prefixed test message through a connected integration."""
        record = await self.store.get(user_id, integration_id)
        if record is None or record.status != IntegrationStatus.CONNECTED:
            return False

        try:
            result = await self.proxy.send_message(
                integration_id,
                record.credentials,
                f"{self.settings.test_message_prefix}{message}",
                user_id=user_id,
            )
        except IntegrationError as e:
            logger.error(f"Test message via {integration_id} failed: {e}")
            return False

        if result.success:
            await self.store.touch(user_id, integration_id)
            await self.activity.record(user_id, "test_message_sent", integration_id)
        else:
            logger.warning(f"Test message via {integration_id} rejected: {result.error}")
        return result.success

    async def get_activity(self, user_id: str, limit: int = 50) -> List[ActivityRecord]:
        return await self.activity.list_for_user(user_id, limit)
