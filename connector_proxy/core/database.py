"""MongoDB connection for integration records and the activity feed."""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, IndexModel
from typing import Optional
import logging

from connector_proxy.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


# Collection names
COLLECTIONS = {
    "integrations": "integrations",
    "user_activities": "user_activities",
}

# Integration records are keyed by "{user_id}:{integration_id}" in _id,
# so only the per-user listings need secondary indexes.
INDEXES = {
    "integrations": [
        IndexModel([("user_id", ASCENDING)]),
    ],
    "user_activities": [
        IndexModel([("user_id", ASCENDING), ("timestamp", DESCENDING)]),
    ],
}


class Database:
    """Owns the Motor client for the lifetime of the app."""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self, settings: Optional[Settings] = None):
        """Connect, verify with a ping and make sure indexes exist."""
        settings = settings or get_settings()
        try:
            self.client = AsyncIOMotorClient(
                settings.mongodb_url,
                serverSelectionTimeoutMS=5000,
            )
            self.db = self.client[settings.mongodb_db_name]
            await self.ping()
            await self.ensure_indexes()
            logger.info(f"Connected to MongoDB database {settings.mongodb_db_name}")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def ensure_indexes(self):
        for name, indexes in INDEXES.items():
            await self.get_collection(COLLECTIONS[name]).create_indexes(indexes)

    async def ping(self) -> bool:
        if self.client is None:
            return False
        await self.client.admin.command("ping")
        return True

    async def disconnect(self):
        if self.client is not None:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("Disconnected from MongoDB")

    def get_collection(self, name: str) -> AsyncIOMotorCollection:
        if self.db is None:
            raise RuntimeError("Database not connected")
        return self.db[name]


database = Database()
