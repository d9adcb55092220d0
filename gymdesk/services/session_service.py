"""
gymdesk/services/session_service.py

Purpose: Active check-in sessions

- A session document exists exactly while a member is inside
- Check-in creates it, check-out deletes it
- Unique index on user_id keeps it to one per member
"""

from typing import Optional, List

from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from gymdesk.core.logging import get_logger, LogContext
from gymdesk.db.mongo import get_active_sessions_collection
from gymdesk.models.scan import ActiveSession

logger = get_logger(__name__)


async def get_active_session(user_id: str) -> Optional[ActiveSession]:
    """
    Returns the member's open session, or None (also on read failure).
    """
    sessions = get_active_sessions_collection()
    try:
        doc = await sessions.find_one({"user_id": user_id})
    except PyMongoError as e:
        logger.warning(f"Error fetching active session for {user_id}: {e}")
        return None
    if not doc:
        return None
    return ActiveSession.model_validate(doc)


async def get_active_sessions() -> List[ActiveSession]:
    """
    Everyone currently inside, latest check-in first.
    """
    sessions = get_active_sessions_collection()
    try:
        docs = await sessions.find({}).sort("check_in_time", DESCENDING).to_list(length=None)
    except PyMongoError as e:
        logger.warning(f"Error fetching active sessions: {e}")
        return []
    return [ActiveSession.model_validate(doc) for doc in docs]


async def is_user_checked_in(user_id: str) -> bool:
    return await get_active_session(user_id) is not None


async def start_session(session: ActiveSession) -> bool:
    """
    Opens a session (check-in).

    Returns:
        True if the session was created, False if the member already had
        one or the write failed
    """
    with LogContext(user_id=session.user_id, action="check-in"):
        sessions = get_active_sessions_collection()
        try:
            await sessions.insert_one(session.model_dump())
        except DuplicateKeyError:
            logger.warning("Session already open")
            return False
        except PyMongoError as e:
            logger.error(f"Error starting session: {e}")
            return False

        logger.info("Session started")
        return True


async def end_session(user_id: str) -> Optional[ActiveSession]:
    """
    Closes the member's session (check-out).

    Returns:
        The removed session, or None if there was none or the delete failed
    """
    with LogContext(user_id=user_id, action="check-out"):
        session = await get_active_session(user_id)
        if not session:
            return None

        sessions = get_active_sessions_collection()
        try:
            result = await sessions.delete_one({"user_id": user_id})
        except PyMongoError as e:
            logger.error(f"Error ending session: {e}")
            return None

        if result.deleted_count == 0:
            # Closed by another scanner between the read and the delete
            return None

        logger.info("Session ended")
        return session
