"""
app/db/mongo.py

Purpose: MongoDB connection setup

- Initializes Motor client with connection pooling
- Single collection: applicants (one document per Telegram user)
- Health checks and startup retry logic
- Connection lifecycle is owned by the caller (app lifespan), not module state
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from typing import Optional
import asyncio
from app.core.config import Settings, settings as default_settings
from app.core.logging import get_logger

logger = get_logger(__name__)

APPLICANTS_COLLECTION = "applicants"


async def connect_to_mongo(config: Optional[Settings] = None, max_retries: int = 3) -> AsyncIOMotorClient:
    """
    Establishes connection to MongoDB with retry logic.
    Called during application startup.

    Returns:
        Connected AsyncIOMotorClient

    Raises:
        ConnectionError: If MongoDB is unreachable after all retries
    """
    config = config or default_settings
    retry_delay = 2

    for attempt in range(1, max_retries + 1):
        try:
            logger.info(
                f"Attempting to connect to MongoDB (attempt {attempt}/{max_retries})"
            )

            client = AsyncIOMotorClient(
                config.MONGODB_URL,
                maxPoolSize=20,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000,
                retryWrites=True,
                retryReads=True,
                tz_aware=True,
            )

            # Verify connection
            await client.admin.command("ping")

            logger.info(
                f"✅ Successfully connected to MongoDB: {config.MONGODB_DB_NAME}"
            )
            return client

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(
                f"Failed to connect to MongoDB (attempt {attempt}/{max_retries}): {e}"
            )

            if attempt < max_retries:
                logger.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay *= 2
            else:
                logger.critical("Failed to connect to MongoDB after all retries")
                raise ConnectionError("Could not establish MongoDB connection") from e


def close_mongo_connection(client: Optional[AsyncIOMotorClient]):
    """
    Closes the MongoDB connection.
    Called during application shutdown.
    """
    if client is not None:
        logger.info("Closing MongoDB connection")
        client.close()
        logger.info("MongoDB connection closed")


async def check_database_health(client: Optional[AsyncIOMotorClient]) -> bool:
    """
    Checks if the database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        if client is None:
            logger.error("MongoDB client not initialized")
            return False

        await client.admin.command("ping")
        return True

    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False


def get_database(client: AsyncIOMotorClient, config: Optional[Settings] = None) -> AsyncIOMotorDatabase:
    """
    Returns the configured database of a connected client.
    """
    config = config or default_settings
    return client[config.MONGODB_DB_NAME]


def get_applicants_collection(database: AsyncIOMotorDatabase) -> AsyncIOMotorCollection:
    """
    Returns the applicants collection.

    Schema Fields:
    - user_id: int (unique key, Telegram user id)
    - username: str | None
    - region, nick, skills, details: str
    - status: "pending" | "approved" | "rejected"
    - registered_at: datetime (set once, on insert)
    - updated_at: datetime
    """
    return database[APPLICANTS_COLLECTION]
