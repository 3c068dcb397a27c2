"""Credential store: persisted per-user integration records."""

from typing import List, Dict, Any, Optional
from datetime import datetime
import json
import logging

from connector_proxy.core.config import Settings
from connector_proxy.core.database import Database, COLLECTIONS
from connector_proxy.models import (
    IntegrationRecord,
    IntegrationStatus,
    record_key,
)
from connector_proxy.models.credentials import credentials_adapter
from connector_proxy.utils.crypto import CredentialCipher

logger = logging.getLogger(__name__)


class CredentialStore:
    """MongoDB-backed store holding one record per (user, integration).

    The document ``_id`` is derived from the pair, so ``save`` is an
    idempotent whole-document overwrite. With an encryption key configured
    the credential bag is stored as a Fernet token instead of plaintext.
    """

    def __init__(self, db: Database, settings: Settings):
        self.db = db
        self.cipher = (
            CredentialCipher(settings.encryption_key, settings.encryption_salt)
            if settings.encryption_key
            else None
        )

    @property
    def collection(self):
        return self.db.get_collection(COLLECTIONS["integrations"])

    def _to_document(self, record: IntegrationRecord) -> Dict[str, Any]:
        doc = record.model_dump(exclude={"id", "credentials"})
        doc["_id"] = record.key
        doc["status"] = record.status.value
        doc["category"] = record.category.value
        credentials = record.credentials.model_dump(mode="json")
        if self.cipher:
            doc["credentials"] = None
            doc["encrypted_credentials"] = self.cipher.encrypt(json.dumps(credentials))
        else:
            doc["credentials"] = credentials
        return doc

    def _from_document(self, doc: Dict[str, Any]) -> IntegrationRecord:
        doc = dict(doc)
        encrypted = doc.pop("encrypted_credentials", None)
        if encrypted:
            if not self.cipher:
                raise ValueError("Stored credentials are encrypted but no encryption key is set")
            doc["credentials"] = json.loads(self.cipher.decrypt(encrypted))
        doc["credentials"] = credentials_adapter.validate_python(doc["credentials"])
        return IntegrationRecord(**doc)

    async def save(self, record: IntegrationRecord) -> IntegrationRecord:
        """Create or replace the user's record for this integration."""
        doc = self._to_document(record)
        await self.collection.replace_one({"_id": doc["_id"]}, doc, upsert=True)
        record.id = doc["_id"]
        logger.info(
            f"Saved integration {record.integration_id} for user {record.user_id} "
            f"with status {record.status.value}"
        )
        return record

    async def get(self, user_id: str, integration_id: str) -> Optional[IntegrationRecord]:
        """Get a user's record for an integration."""
        doc = await self.collection.find_one({"_id": record_key(user_id, integration_id)})
        if doc:
            return self._from_document(doc)
        return None

    async def list_for_user(self, user_id: str) -> List[IntegrationRecord]:
        """All records belonging to a user."""
        cursor = self.collection.find({"user_id": user_id})
        records = []

        async for doc in cursor:
            records.append(self._from_document(doc))

        return records

    async def update_status(
        self,
        user_id: str,
        integration_id: str,
        status: IntegrationStatus,
        error_message: Optional[str] = None,
    ) -> bool:
        """Set a record's status after a validation call."""
        now = datetime.utcnow()
        update: Dict[str, Any] = {
            "status": status.value,
            "error_message": error_message,
            "last_activity": now,
        }
        if status == IntegrationStatus.CONNECTED:
            update["last_validated_at"] = now

        result = await self.collection.update_one(
            {"_id": record_key(user_id, integration_id)},
            {"$set": update},
        )
        return result.matched_count > 0

    async def touch(self, user_id: str, integration_id: str) -> None:
        """Bump last_activity."""
        await self.collection.update_one(
            {"_id": record_key(user_id, integration_id)},
            {"$set": {"last_activity": datetime.utcnow()}},
        )

    async def delete(self, user_id: str, integration_id: str) -> bool:
        """Delete a user's record for an integration."""
        result = await self.collection.delete_one({"_id": record_key(user_id, integration_id)})

        if result.deleted_count > 0:
            logger.info(f"Deleted integration {integration_id} for user {user_id}")
            return True

        return False
