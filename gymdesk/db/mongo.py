"""
gymdesk/db/mongo.py

Purpose: MongoDB connection setup

- Initializes Motor client with connection pooling
- One collection per record type, all keyed by user_id
- Health checks and retry logic
- Proper connection lifecycle management
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from typing import Optional
import asyncio
from gymdesk.core.config import settings
from gymdesk.core.logging import get_logger

logger = get_logger(__name__)

# Collection names
USERS = "users"
SUBSCRIPTIONS = "subscriptions"
SUBSCRIPTION_HISTORY = "subscription_history"
MEDICAL_HISTORY = "medical_history"
EMERGENCY_CONTACTS = "emergency_contacts"
LIABILITY_WAIVERS = "liability_waivers"
SCAN_LOGS = "scan_logs"
ACTIVE_SESSIONS = "active_sessions"
COUNTERS = "counters"

# Global MongoDB client
_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo():
    """
    Establishes connection to MongoDB with retry logic.
    Called during application startup.
    """
    global _client, _database

    if _client is not None:
        logger.warning("MongoDB client already initialized")
        return

    max_retries = 3
    retry_delay = 2

    for attempt in range(1, max_retries + 1):
        try:
            logger.info(
                f"Attempting to connect to MongoDB (attempt {attempt}/{max_retries})"
            )

            _client = AsyncIOMotorClient(
                settings.MONGODB_URL,
                maxPoolSize=50,
                minPoolSize=5,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000,
                retryWrites=True,
                retryReads=True,
            )

            _database = _client[settings.MONGODB_DB_NAME]

            # Verify connection
            await _client.admin.command("ping")

            logger.info(
                f"Successfully connected to MongoDB: {settings.MONGODB_DB_NAME}"
            )
            return

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(
                f"Failed to connect to MongoDB (attempt {attempt}/{max_retries}): {e}"
            )
            _client = None
            _database = None

            if attempt < max_retries:
                logger.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay *= 2  # Exponential backoff
            else:
                logger.critical("Failed to connect to MongoDB after all retries")
                raise ConnectionError("Could not establish MongoDB connection") from e


async def close_mongo_connection():
    """
    Closes the MongoDB connection.
    Called during application shutdown.
    """
    global _client, _database

    if _client:
        logger.info("Closing MongoDB connection")
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


async def check_database_health() -> bool:
    """
    Checks if the database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        if _client is None:
            logger.error("MongoDB client not initialized")
            return False

        await _client.admin.command("ping")
        return True

    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False


def get_database() -> AsyncIOMotorDatabase:
    """
    Returns the MongoDB database instance.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _database is None:
        raise RuntimeError(
            "Database not initialized. Call connect_to_mongo() during startup."
        )
    return _database


def get_collection(name: str):
    """Returns a collection of the active database by name."""
    return get_database()[name]


def get_users_collection():
    """
    Member profiles.

    Fields: user_id (unique), name, email, phone, birthday, age, address,
    goal, program_type, height_cm, weight_kg, created_at, updated_at
    """
    return get_collection(USERS)


def get_subscriptions_collection():
    """Live subscription per member (unique user_id)."""
    return get_collection(SUBSCRIPTIONS)


def get_subscription_history_collection():
    """Append-only archive of overwritten subscriptions."""
    return get_collection(SUBSCRIPTION_HISTORY)


def get_medical_history_collection():
    return get_collection(MEDICAL_HISTORY)


def get_emergency_contacts_collection():
    return get_collection(EMERGENCY_CONTACTS)


def get_liability_waivers_collection():
    return get_collection(LIABILITY_WAIVERS)


def get_scan_logs_collection():
    """Append-only check-in/out events."""
    return get_collection(SCAN_LOGS)


def get_active_sessions_collection():
    """One document per member currently inside the gym."""
    return get_collection(ACTIVE_SESSIONS)


def get_counters_collection():
    """Named sequence counters (member ID allocation)."""
    return get_collection(COUNTERS)
