"""
Database initialization script

Run once (or after schema changes) to create the applicants indexes:
    python scripts/init_db.py

With --reset the existing indexes are dropped first.
"""

import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

import logging

from app.core.config import settings
from app.db.indexes import create_indexes, drop_all_indexes
from app.db.mongo import close_mongo_connection, connect_to_mongo, get_applicants_collection, get_database

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def main(reset: bool = False):
    """Main initialization"""
    logger.info("=" * 60)
    logger.info("  Defender Bot Database Setup")
    logger.info("=" * 60 + "\n")

    logger.info(f"🔌 Connecting to MongoDB: {settings.MONGODB_DB_NAME}")
    client = await connect_to_mongo(max_retries=1)

    try:
        database = get_database(client)
        applicants = get_applicants_collection(database)

        if reset:
            await drop_all_indexes(applicants)

        await create_indexes(applicants)

        logger.info("\n🔍 Verifying indexes...")
        indexes = await applicants.index_information()
        for idx_name in indexes.keys():
            if idx_name != "_id_":
                logger.info(f"    ✅ {idx_name}")

        count = await applicants.count_documents({})
        logger.info(f"\n📊 Current applicants: {count}")
        logger.info("\n✅ Database initialization complete!")

    except Exception as e:
        logger.error(f"\n❌ Error: {e}")
        raise

    finally:
        close_mongo_connection(client)

    logger.info("\n" + "=" * 60)


if __name__ == "__main__":
    asyncio.run(main(reset="--reset" in sys.argv[1:]))
