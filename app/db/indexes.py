"""
app/db/indexes.py

Purpose: Database index management

- Unique index guarantees one record per user
- Status index backs volunteer lookups for help-signal broadcasts
"""

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING

from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes(applicants: AsyncIOMotorCollection):
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        logger.info("Creating database indexes...")

        # Unique index on user_id (primary identifier)
        await applicants.create_index(
            [("user_id", ASCENDING)], unique=True, name="user_id_unique"
        )
        logger.debug("Created unique index on applicants.user_id")

        # Index on status + registration order for find_by_status
        await applicants.create_index(
            [("status", ASCENDING), ("registered_at", ASCENDING)],
            name="status_registered_idx"
        )
        logger.debug("Created compound index on applicants.status + registered_at")

        # Index on registered_at for list_all ordering
        await applicants.create_index(
            [("registered_at", ASCENDING)], name="registered_at_idx"
        )
        logger.debug("Created index on applicants.registered_at")

        indexes = await applicants.index_information()
        logger.info(f"✅ Database indexes ready: {sorted(indexes)}")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


async def drop_all_indexes(applicants: AsyncIOMotorCollection):
    """
    Drops all custom indexes (keeps _id index).
    Use with caution! Only for maintenance/migration.
    """
    logger.warning("Dropping all database indexes...")
    await applicants.drop_indexes()
    logger.info("✅ All indexes dropped successfully")
