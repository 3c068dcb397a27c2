"""OAuth completion flags.

The callback handler writes the outcome of a flow to Redis under the flow's
state; the dashboard polls for it instead of guessing from popup closure.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
import hashlib
import logging

import redis.asyncio as redis
from pydantic import BaseModel, Field
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_result,
    stop_after_delay,
    wait_exponential,
)

logger = logging.getLogger(__name__)


class OAuthCompletionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class OAuthCompletion(BaseModel):
    status: OAuthCompletionStatus
    integration_id: Optional[str] = None
    error: Optional[str] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def finished(self) -> bool:
        return self.status in (OAuthCompletionStatus.COMPLETED, OAuthCompletionStatus.FAILED)


class OAuthCompletionTracker:
    """Redis-backed completion channel for OAuth flows."""

    def __init__(self, redis_client: redis.Redis, ttl: int = 600):
        self.redis_client = redis_client
        self.ttl = ttl

    @staticmethod
    def _key(state: str) -> str:
        digest = hashlib.sha256(state.encode()).hexdigest()
        return f"oauth_completion:{digest}"

    async def claim(self, state: str, integration_id: str) -> bool:
        """Mark a state as in use; False when it was already claimed."""
        marker = OAuthCompletion(
            status=OAuthCompletionStatus.IN_PROGRESS,
            integration_id=integration_id,
        )
        claimed = await self.redis_client.set(
            self._key(state), marker.model_dump_json(), ex=self.ttl, nx=True
        )
        return bool(claimed)

    async def complete(
        self,
        state: str,
        integration_id: str,
        success: bool,
        error: Optional[str] = None,
    ) -> OAuthCompletion:
        completion = OAuthCompletion(
            status=OAuthCompletionStatus.COMPLETED if success else OAuthCompletionStatus.FAILED,
            integration_id=integration_id,
            error=error,
        )
        await self.redis_client.set(self._key(state), completion.model_dump_json(), ex=self.ttl)
        logger.info(f"OAuth flow for {integration_id} finished with {completion.status.value}")
        return completion

    async def get(self, state: str) -> Optional[OAuthCompletion]:
        value = await self.redis_client.get(self._key(state))
        if value:
            return OAuthCompletion.model_validate_json(value)
        return None

    async def wait_for(
        self,
        state: str,
        timeout: float = 60.0,
        max_interval: float = 4.0,
    ) -> OAuthCompletion:
        """Poll until the flow finishes, backing off exponentially up to timeout."""
        async def poll() -> Optional[OAuthCompletion]:
            completion = await self.get(state)
            return completion if completion and completion.finished else None

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_delay(timeout),
                wait=wait_exponential(multiplier=0.25, max=max_interval),
                retry=retry_if_result(lambda result: result is None),
            ):
                with attempt:
                    result = await poll()
                if not attempt.retry_state.outcome.failed:
                    attempt.retry_state.set_result(result)
        except RetryError:
            return OAuthCompletion(status=OAuthCompletionStatus.TIMED_OUT)

        return result
