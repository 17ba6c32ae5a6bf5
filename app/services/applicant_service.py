"""
app/services/applicant_service.py

Purpose: Applicant record store

- Upsert-by-key of join submissions (full replace, status reset)
- Lookups by key and by status
- Status updates from admin review
- Wraps driver failures into PersistenceError
"""

from typing import Any, Dict, List, Mapping, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from app.core.exceptions import PersistenceError
from app.core.logging import get_logger, LogContext
from app.models.applicant import (
    APPLICANT_TEXT_FIELDS,
    ApplicantRecord,
    ApplicantStatus,
)
from utils.time_utils import utc_now

logger = get_logger(__name__)

# Registration time is immutable, so sorting on it yields insertion order
STORAGE_ORDER = [("registered_at", ASCENDING), ("_id", ASCENDING)]


class ApplicantStore:
    """
    Record store over the applicants collection.

    Concurrent writes for one user race and the last write wins; no locking
    is layered on top of the single-document atomicity MongoDB provides.
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def upsert(self, user_id: int, fields: Mapping[str, Any]) -> ApplicantRecord:
        """
        Creates or fully replaces the applicant record for user_id.

        Args:
            user_id: Telegram user id
            fields: region/nick/skills/details, optionally username and status

        Returns:
            The stored record
        """
        with LogContext(user_id=user_id):
            now = utc_now()
            status = ApplicantStatus(fields.get("status", ApplicantStatus.PENDING))
            replacement: Dict[str, Any] = {
                key: str(fields.get(key, "")) for key in APPLICANT_TEXT_FIELDS
            }
            replacement["username"] = fields.get("username")
            replacement["status"] = status.value
            replacement["updated_at"] = now

            try:
                await self.collection.update_one(
                    {"user_id": user_id},
                    {
                        "$set": replacement,
                        "$setOnInsert": {"user_id": user_id, "registered_at": now},
                    },
                    upsert=True,
                )
                document = await self.collection.find_one({"user_id": user_id})
            except PyMongoError as e:
                logger.error(f"Failed to upsert applicant: {e}", exc_info=True)
                raise PersistenceError("Could not save application", details={"user_id": user_id}) from e

            if document is None:
                raise PersistenceError("Application vanished after write", details={"user_id": user_id})

            logger.info(f"Applicant upserted with status={status.value}")
            return ApplicantRecord.from_document(document)

    async def find_by_key(self, user_id: int) -> Optional[ApplicantRecord]:
        """
        Retrieves an applicant by user id.

        Returns:
            ApplicantRecord or None if not found
        """
        try:
            document = await self.collection.find_one({"user_id": user_id})
        except PyMongoError as e:
            logger.error(f"Failed to load applicant {user_id}: {e}", exc_info=True)
            raise PersistenceError("Could not load application", details={"user_id": user_id}) from e

        return ApplicantRecord.from_document(document) if document else None

    async def find_by_status(self, status: ApplicantStatus) -> List[ApplicantRecord]:
        """
        Lists applicants with the given status, oldest registration first.
        """
        return await self._find({"status": ApplicantStatus(status).value})

    async def list_all(self) -> List[ApplicantRecord]:
        """
        Lists every applicant, oldest registration first.
        """
        return await self._find({})

    async def set_status(self, user_id: int, status: ApplicantStatus) -> bool:
        """
        Updates only the status of an existing applicant.

        Returns:
            True if a record was found, False if the key is absent (no-op)
        """
        status = ApplicantStatus(status)
        with LogContext(user_id=user_id):
            try:
                result = await self.collection.update_one(
                    {"user_id": user_id},
                    {"$set": {"status": status.value, "updated_at": utc_now()}},
                )
            except PyMongoError as e:
                logger.error(f"Failed to update status: {e}", exc_info=True)
                raise PersistenceError("Could not update status", details={"user_id": user_id}) from e

            found = result.matched_count > 0
            if found:
                logger.info(f"Status set to {status.value}")
            else:
                logger.warning("Status update ignored, applicant not found")
            return found

    async def count_by_status(self) -> Dict[str, int]:
        """Number of applicants per status, used by health and admin views."""
        counts = {status.value: 0 for status in ApplicantStatus}
        for record in await self.list_all():
            counts[record.status.value] += 1
        return counts

    async def _find(self, query: Dict[str, Any]) -> List[ApplicantRecord]:
        try:
            cursor = self.collection.find(query).sort(STORAGE_ORDER)
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Failed to query applicants {query}: {e}", exc_info=True)
            raise PersistenceError("Could not list applications", details={"query": query}) from e

        return [ApplicantRecord.from_document(document) for document in documents]
