"""
gymdesk/services/subscription_service.py

Purpose: Subscription lifecycle management

- Computes subscription windows (regular, daily, walk-in)
- Active / remaining-days / expiring-soon checks against wall-clock time
- Upsert-with-archive persistence (one live subscription per member)
- Renewals and expiring-member lookups
"""

import math
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List, Set, Iterable

from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from gymdesk.core.config import settings
from gymdesk.core.exceptions import StoreWriteError
from gymdesk.core.logging import get_logger, LogContext
from gymdesk.db.mongo import (
    get_subscriptions_collection,
    get_subscription_history_collection,
)
from gymdesk.models.subscription import (
    Subscription,
    SubscriptionHistory,
    SubscriptionKind,
    SubscriptionStatus,
    MembershipType,
)
from gymdesk.utils.time_utils import local_now, add_months, next_midnight, to_local_naive

logger = get_logger(__name__)

ONE_DAY = timedelta(days=1)
ARCHIVE_ID_ATTEMPTS = 10


# ==============================
# STATUS CHECKS
# ==============================

def is_active(subscription: Optional[Subscription], now: Optional[datetime] = None) -> bool:
    """
    True iff the subscription exists, its status is active and its end
    date has not passed (the end instant itself still counts as active).
    """
    if subscription is None:
        return False
    now = now or local_now()
    return subscription.status == SubscriptionStatus.ACTIVE and subscription.end_date >= now


def remaining_days(subscription: Optional[Subscription], now: Optional[datetime] = None) -> int:
    """
    Whole days left, rounded up: 1.2 days left counts as 2.
    Never negative; 0 for a missing or ended subscription.
    """
    if subscription is None:
        return 0
    now = now or local_now()
    left = (subscription.end_date - now) / ONE_DAY
    return max(0, math.ceil(left))


def is_expiring_soon(
    subscription: Optional[Subscription],
    threshold_days: Optional[int] = None,
    now: Optional[datetime] = None
) -> bool:
    """
    True for an active subscription with 0 < remaining days <= threshold.
    """
    if subscription is None or subscription.status != SubscriptionStatus.ACTIVE:
        return False
    if threshold_days is None:
        threshold_days = settings.EXPIRING_SOON_DAYS
    remaining = remaining_days(subscription, now)
    return 0 < remaining <= threshold_days


# ==============================
# WINDOW CONSTRUCTION
# ==============================

def plan_label(duration_months: int) -> str:
    return f"{duration_months} month" if duration_months == 1 else f"{duration_months} months"


def create_regular(user_id: str, duration_months: int = 1, start: Optional[datetime] = None) -> Subscription:
    """
    Regular (monthly) plan: ends the same day-of-month N months later,
    clamped to shorter months (Jan 31 + 1 month = Feb 28/29).
    """
    if duration_months < 1:
        raise ValueError("duration_months must be at least 1")

    now = local_now()
    start = to_local_naive(start) if start else now
    return Subscription(
        user_id=user_id,
        kind=SubscriptionKind.REGULAR,
        start_date=start,
        end_date=add_months(start, duration_months),
        status=SubscriptionStatus.ACTIVE,
        plan_duration=plan_label(duration_months),
        created_at=now,
    )


def create_daily(user_id: str, start: Optional[datetime] = None) -> Subscription:
    """
    Daily pass: always expires at 00:00 of the day after start's
    calendar date, whatever time of day it started. An aware start is
    converted to local time first, so the local date decides.
    """
    now = local_now()
    start = to_local_naive(start) if start else now
    return Subscription(
        user_id=user_id,
        kind=SubscriptionKind.DAILY,
        start_date=start,
        end_date=next_midnight(start),
        status=SubscriptionStatus.ACTIVE,
        plan_duration="daily",
        created_at=now,
    )


def create_walk_in(user_id: str, start_date: datetime, end_date: datetime) -> Subscription:
    """
    Walk-in: caller-chosen window. end_date >= start_date is NOT checked
    here; callers validate the range before calling.
    """
    return Subscription(
        user_id=user_id,
        kind=SubscriptionKind.WALK_IN,
        start_date=to_local_naive(start_date),
        end_date=to_local_naive(end_date),
        status=SubscriptionStatus.ACTIVE,
        plan_duration=None,
        membership_type=MembershipType.WALK_IN,
        created_at=local_now(),
    )


# ==============================
# PERSISTENCE
# ==============================

def _to_subscription(doc: Optional[Dict[str, Any]]) -> Optional[Subscription]:
    if not doc:
        return None
    return Subscription.model_validate(doc)


async def get_subscription(user_id: str) -> Optional[Subscription]:
    """
    Returns the live subscription of a member, or None (also on read failure).
    """
    subscriptions = get_subscriptions_collection()
    try:
        doc = await subscriptions.find_one({"user_id": user_id})
    except PyMongoError as e:
        logger.warning(f"Error fetching subscription for {user_id}: {e}")
        return None
    return _to_subscription(doc)


async def list_subscriptions() -> List[Subscription]:
    subscriptions = get_subscriptions_collection()
    try:
        docs = await subscriptions.find({}).to_list(length=None)
    except PyMongoError as e:
        logger.warning(f"Error fetching subscriptions: {e}")
        return []
    return [Subscription.model_validate(doc) for doc in docs]


async def archive_subscription(subscription: Subscription) -> SubscriptionHistory:
    """
    Appends a verbatim copy of a subscription to the history collection.

    Raises:
        StoreWriteError: If the archive entry cannot be written
    """
    history = get_subscription_history_collection()
    archived_at = local_now()

    for _ in range(ARCHIVE_ID_ATTEMPTS):
        entry = SubscriptionHistory.from_subscription(subscription, archived_at=archived_at)
        try:
            await history.insert_one(entry.model_dump())
        except DuplicateKeyError:
            # Same member archived more than once within one millisecond
            archived_at += timedelta(milliseconds=1)
            continue
        except PyMongoError as e:
            logger.error(f"Error archiving subscription: {e}")
            raise StoreWriteError(f"Subscription archive failed: {e}") from e

        logger.debug(f"Archived subscription as {entry.id}")
        return entry

    raise StoreWriteError("Subscription archive failed: no free history id")


async def add_or_update_subscription(subscription: Subscription) -> Subscription:
    """
    Stores a member's subscription.

    If the member already has one, it is first archived to
    subscription_history and then overwritten in place with every field of
    the new subscription. Otherwise the subscription is inserted.

    Raises:
        StoreWriteError: If the archive, update or insert fails. A failed
            archive aborts the overwrite so the audit trail has no gaps.
    """
    with LogContext(user_id=subscription.user_id):
        subscriptions = get_subscriptions_collection()
        existing = await get_subscription(subscription.user_id)
        data = subscription.to_document()

        if existing:
            await archive_subscription(existing)

            try:
                await subscriptions.update_one(
                    {"user_id": subscription.user_id},
                    {"$set": data}
                )
            except PyMongoError as e:
                logger.error(f"Error updating subscription: {e}")
                raise StoreWriteError(f"Subscription update failed: {e}") from e

            logger.info(
                f"Subscription replaced ({existing.kind} -> {subscription.kind})",
                extra={"end_date": subscription.end_date.isoformat()}
            )
        else:
            try:
                await subscriptions.insert_one(data)
            except PyMongoError as e:
                logger.error(f"Error adding subscription: {e}")
                raise StoreWriteError(f"Subscription insert failed: {e}") from e

            logger.info(
                f"Subscription created ({subscription.kind})",
                extra={"end_date": subscription.end_date.isoformat()}
            )

        return subscription


async def get_subscription_history(user_id: Optional[str] = None) -> List[SubscriptionHistory]:
    """
    Archived subscriptions, most recently archived first.
    Pass user_id to restrict to one member.
    """
    query = {"user_id": user_id} if user_id else {}
    history = get_subscription_history_collection()
    try:
        docs = await history.find(query).sort("archived_at", DESCENDING).to_list(length=None)
    except PyMongoError as e:
        logger.warning(f"Error fetching subscription history: {e}")
        return []
    return [SubscriptionHistory.model_validate(doc) for doc in docs]


async def build_subscription_lookup(user_ids: Iterable[str]) -> Dict[str, Optional[Subscription]]:
    """
    Loads the live subscription of every listed member in one query.

    Every requested ID is present in the result; members without a
    subscription map to None. Callers build one lookup per listing and
    pass it to whatever renders the rows.
    """
    ids = list(dict.fromkeys(user_ids))
    lookup: Dict[str, Optional[Subscription]] = {user_id: None for user_id in ids}
    if not ids:
        return lookup

    subscriptions = get_subscriptions_collection()
    try:
        docs = await subscriptions.find({"user_id": {"$in": ids}}).to_list(length=None)
    except PyMongoError as e:
        logger.warning(f"Error loading subscriptions for listing: {e}")
        return lookup

    for doc in docs:
        lookup[doc["user_id"]] = Subscription.model_validate(doc)
    return lookup


# ==============================
# RENEWALS
# ==============================

def _with_labels(subscription: Subscription, **labels) -> Subscription:
    if not labels:
        return subscription
    return Subscription.model_validate({**subscription.model_dump(), **labels})


async def renew_regular(user_id: str, duration_months: int = 1, **labels) -> Subscription:
    """
    Starts a new N-month period from now and stores it.

    Args:
        labels: Optional coaching_preference / payment_status / payment_date
    """
    subscription = create_regular(user_id, duration_months)
    labels.setdefault("membership_type", MembershipType.RENEWAL)
    return await add_or_update_subscription(_with_labels(subscription, **labels))


async def renew_daily(user_id: str, start: Optional[datetime] = None, **labels) -> Subscription:
    subscription = create_daily(user_id, start)
    labels.setdefault("membership_type", MembershipType.RENEWAL)
    return await add_or_update_subscription(_with_labels(subscription, **labels))


async def renew_walk_in(
    user_id: str,
    end_date: datetime,
    start_date: Optional[datetime] = None,
    **labels
) -> Subscription:
    """
    Walk-in renewal over a caller-chosen window (start defaults to now).
    The window is not validated here.
    """
    subscription = create_walk_in(user_id, start_date or local_now(), end_date)
    return await add_or_update_subscription(_with_labels(subscription, **labels))


# ==============================
# EXPIRY QUERIES
# ==============================

async def expiring_user_ids(threshold_days: Optional[int] = None, now: Optional[datetime] = None) -> Set[str]:
    """
    IDs of members whose subscription is expiring soon.
    """
    now = now or local_now()
    return {
        s.user_id
        for s in await list_subscriptions()
        if is_expiring_soon(s, threshold_days, now)
    }
