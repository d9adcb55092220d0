"""
gymdesk/services/access_service.py

Purpose: Access validation for scanned member IDs

- Resolves the member and their live subscription
- Checks subscription activity and current check-in state
- Reports one of four outcomes; never changes session state itself
"""

from datetime import datetime
from typing import Optional

from gymdesk.core.logging import get_logger, LogContext
from gymdesk.flow.states import get_status_metadata
from gymdesk.models.scan import AccessStatus, AccessValidation
from gymdesk.services import member_service, session_service, subscription_service

logger = get_logger(__name__)


def _result(status: AccessStatus, **kwargs) -> AccessValidation:
    metadata = get_status_metadata(status)
    return AccessValidation(
        is_valid=metadata.grants_entry,
        status=status,
        message=metadata.message,
        **kwargs
    )


async def validate_access(user_id: str, now: Optional[datetime] = None) -> AccessValidation:
    """
    Validates a scanned member ID.

    Outcomes:
        invalid             - no member with this ID
        expired             - member exists but has no active subscription
        already-checked-in  - active subscription and an open session
        granted             - active subscription and no open session

    Args:
        user_id: Scanned member ID
        now: Reference time for the activity check (defaults to now)

    Returns:
        AccessValidation with the resolved user/subscription where known
    """
    with LogContext(user_id=user_id):
        user = await member_service.get_user(user_id)
        if not user:
            logger.info("Access check: unknown member")
            return _result(AccessStatus.INVALID)

        subscription = await subscription_service.get_subscription(user_id)
        if not subscription_service.is_active(subscription, now):
            logger.info("Access check: subscription not active")
            return _result(AccessStatus.EXPIRED, user=user, subscription=subscription)

        if await session_service.is_user_checked_in(user_id):
            status = AccessStatus.ALREADY_CHECKED_IN
        else:
            status = AccessStatus.GRANTED

        logger.info(f"Access check: {status.value}")
        return _result(status, user=user, subscription=subscription)
