"""
gymdesk/db/indexes.py

Purpose: Database index management

- Unique user_id indexes for the one-per-member collections
- Ordering indexes for newest-first listings
- Idempotent, safe to run on every startup
"""

from pymongo import ASCENDING, DESCENDING

from gymdesk.db.mongo import (
    get_users_collection,
    get_subscriptions_collection,
    get_subscription_history_collection,
    get_medical_history_collection,
    get_emergency_contacts_collection,
    get_liability_waivers_collection,
    get_scan_logs_collection,
    get_active_sessions_collection,
)
from gymdesk.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = get_users_collection()
        subscriptions = get_subscriptions_collection()
        history = get_subscription_history_collection()
        scan_logs = get_scan_logs_collection()
        sessions = get_active_sessions_collection()

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS
        # ==============================================

        await users.create_index("user_id", unique=True, name="user_id_unique")
        await users.create_index([("created_at", DESCENDING)], name="users_created_idx")
        logger.debug("Created indexes on users")

        # ==============================================
        # ONE-PER-MEMBER RECORDS
        # ==============================================

        # At most one live subscription per member
        await subscriptions.create_index("user_id", unique=True, name="subscription_user_unique")
        await subscriptions.create_index("end_date", name="subscription_end_idx")

        for collection in (
            get_medical_history_collection(),
            get_emergency_contacts_collection(),
            get_liability_waivers_collection(),
        ):
            await collection.create_index("user_id", unique=True, name="user_id_unique")
        logger.debug("Created unique user_id indexes on member records")

        # At most one active session per member
        await sessions.create_index("user_id", unique=True, name="session_user_unique")
        await sessions.create_index([("check_in_time", DESCENDING)], name="session_checkin_idx")
        logger.debug("Created indexes on active_sessions")

        # ==============================================
        # APPEND-ONLY LOGS
        # ==============================================

        await history.create_index("id", unique=True, name="history_id_unique")
        await history.create_index(
            [("user_id", ASCENDING), ("archived_at", DESCENDING)],
            name="history_user_idx"
        )

        await scan_logs.create_index([("timestamp", DESCENDING)], name="scan_timestamp_idx")
        await scan_logs.create_index(
            [("user_id", ASCENDING), ("timestamp", DESCENDING)],
            name="scan_user_idx"
        )
        logger.debug("Created indexes on history and scan logs")

        logger.info("All database indexes created successfully")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


if __name__ == "__main__":
    """
    Run this script directly to create indexes manually.
    """
    import asyncio
    from gymdesk.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
