"""
Database initialization script

Run once (or after importing members) to create collections and indexes
and to bring the member ID counter in line with existing data:
    python scripts/init_db.py
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

from gymdesk.core.config import settings
from gymdesk.db import mongo
from gymdesk.db.indexes import create_indexes
from gymdesk.services.member_service import USER_ID_COUNTER
from gymdesk.utils.validation_utils import parse_user_id_number

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

COLLECTIONS = [
    mongo.USERS,
    mongo.SUBSCRIPTIONS,
    mongo.SUBSCRIPTION_HISTORY,
    mongo.MEDICAL_HISTORY,
    mongo.EMERGENCY_CONTACTS,
    mongo.LIABILITY_WAIVERS,
    mongo.SCAN_LOGS,
    mongo.ACTIVE_SESSIONS,
]


async def sync_user_id_counter(db) -> int:
    """
    Raises the member ID counter to the highest ID already in use, so the
    next allocation does not collide with imported members.
    """
    highest = 0
    async for doc in db[mongo.USERS].find({}, {"user_id": 1}):
        number = parse_user_id_number(doc.get("user_id", ""))
        if number is not None:
            highest = max(highest, number - settings.USER_ID_START)

    await db[mongo.COUNTERS].update_one(
        {"_id": USER_ID_COUNTER},
        {"$max": {"last_number": highest}},
        upsert=True
    )
    doc = await db[mongo.COUNTERS].find_one({"_id": USER_ID_COUNTER})
    return doc["last_number"]


async def main():
    """Main initialization"""
    logger.info("=" * 60)
    logger.info("  GymDesk Database Setup")
    logger.info("=" * 60)

    await mongo.connect_to_mongo()
    db = mongo.get_database()

    try:
        await create_indexes()

        logger.info("Verifying indexes...")
        for name in COLLECTIONS:
            indexes = await db[name].index_information()
            names = [idx for idx in indexes.keys() if idx != "_id_"]
            logger.info(f"  {name}: {', '.join(names) or '-'}")

        last_number = await sync_user_id_counter(db)
        logger.info(f"Member ID counter at {last_number} (next: {settings.USER_ID_START + last_number + 1})")

        logger.info("Current documents:")
        for name in COLLECTIONS:
            logger.info(f"  {name}: {await db[name].count_documents({})}")

        logger.info("Database initialization complete!")

    finally:
        await mongo.close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(main())
