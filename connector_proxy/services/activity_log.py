"""User activity feed."""

from typing import Any, Dict, List, Optional
import logging

from connector_proxy.core.database import Database, COLLECTIONS
from connector_proxy.models import ActivityRecord

logger = logging.getLogger(__name__)


class ActivityLog:
    """Append-only log of integration events per user."""

    def __init__(self, db: Database):
        self.db = db

    @property
    def collection(self):
        return self.db.get_collection(COLLECTIONS["user_activities"])

    async def record(
        self,
        user_id: str,
        action: str,
        integration_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> ActivityRecord:
        activity = ActivityRecord(
            user_id=user_id,
            action=action,
            integration_id=integration_id,
            details=details or {},
        )
        result = await self.collection.insert_one(activity.model_dump(exclude={"id"}))
        activity.id = str(result.inserted_id)
        return activity

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[ActivityRecord]:
        """Most recent activities first."""
        cursor = self.collection.find({"user_id": user_id}).sort("timestamp", -1).limit(limit)
        activities = []

        async for doc in cursor:
            doc["_id"] = str(doc["_id"])
            activities.append(ActivityRecord(**doc))

        return activities
