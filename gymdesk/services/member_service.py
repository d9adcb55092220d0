"""
gymdesk/services/member_service.py

Purpose: Member data management

- Create, read, partially update and delete member profiles
- Allocate PREFIX-NNNN member IDs from an atomic counter
- Enrol a new member with their first subscription and intake records
"""

import re
from datetime import datetime
from typing import Optional, Dict, Any, List

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import BulkWriteError, DuplicateKeyError, PyMongoError

from gymdesk.core.config import settings
from gymdesk.core.exceptions import ConflictError, StoreWriteError, ValidationError
from gymdesk.core.logging import get_logger, LogContext
from gymdesk.db.mongo import (
    get_users_collection,
    get_counters_collection,
    get_subscriptions_collection,
    get_medical_history_collection,
    get_emergency_contacts_collection,
    get_liability_waivers_collection,
    get_active_sessions_collection,
)
from gymdesk.models.intake import MedicalHistory, EmergencyContact, LiabilityWaiver
from gymdesk.models.subscription import SubscriptionKind, MembershipType, PaymentStatus
from gymdesk.models.user import User, UPDATABLE_USER_FIELDS
from gymdesk.services import intake_service, subscription_service
from gymdesk.utils.time_utils import local_now
from gymdesk.utils.validation_utils import format_user_id, is_valid_date_range

logger = get_logger(__name__)

USER_ID_COUNTER = "user_id"


def _to_user(doc: Optional[Dict[str, Any]]) -> Optional[User]:
    if not doc:
        return None
    return User.model_validate(doc)


async def get_users() -> List[User]:
    """
    Retrieves all members, newest first.
    Read failures degrade to an empty list.
    """
    users = get_users_collection()
    try:
        docs = await users.find({}).sort("created_at", DESCENDING).to_list(length=None)
    except PyMongoError as e:
        logger.warning(f"Error fetching users: {e}")
        return []
    return [User.model_validate(doc) for doc in docs]


async def get_user(user_id: str) -> Optional[User]:
    """
    Retrieves a member by ID.

    Returns:
        User or None if not found (or the read failed)
    """
    users = get_users_collection()
    try:
        doc = await users.find_one({"user_id": user_id})
    except PyMongoError as e:
        logger.warning(f"Error fetching user {user_id}: {e}")
        return None
    return _to_user(doc)


async def search_users(term: str) -> List[User]:
    """
    Case-insensitive substring search over name, email and phone.
    An empty term returns every member.
    """
    term = (term or "").strip()
    if not term:
        return await get_users()

    pattern = {"$regex": re.escape(term), "$options": "i"}
    users = get_users_collection()
    try:
        docs = await users.find(
            {"$or": [{"name": pattern}, {"email": pattern}, {"phone": pattern}]}
        ).sort("created_at", DESCENDING).to_list(length=None)
    except PyMongoError as e:
        logger.warning(f"Error searching users: {e}")
        return []
    return [User.model_validate(doc) for doc in docs]


async def add_user(user: User) -> User:
    """
    Inserts a new member.

    Raises:
        ConflictError: If the member ID is already taken
        StoreWriteError: If the insert fails for any other reason
    """
    with LogContext(user_id=user.user_id):
        users = get_users_collection()
        try:
            await users.insert_one(user.to_document())
        except DuplicateKeyError as e:
            logger.warning("Member ID already exists")
            raise ConflictError(f"Member {user.user_id} already exists") from e
        except PyMongoError as e:
            logger.error(f"Error adding user: {e}")
            raise StoreWriteError(f"User insert failed: {e}") from e

        logger.info("Member created")
        return user


async def add_users(users_to_add: List[User]) -> int:
    """
    Bulk insert used by imports. Rows that fail (e.g. duplicate IDs) are
    skipped and logged.

    Returns:
        Number of members inserted
    """
    if not users_to_add:
        return 0

    users = get_users_collection()
    try:
        result = await users.insert_many(
            [u.to_document() for u in users_to_add],
            ordered=False
        )
        inserted = len(result.inserted_ids)
    except BulkWriteError as e:
        inserted = e.details.get("nInserted", 0)
        logger.error(
            f"Bulk add skipped {len(users_to_add) - inserted} member(s)",
            extra={"errors": e.details.get("writeErrors", [])}
        )
    except PyMongoError as e:
        logger.error(f"Error bulk adding users: {e}")
        return 0

    logger.info(f"Bulk added {inserted} member(s)")
    return inserted


async def update_user(user_id: str, updates: Dict[str, Any]) -> bool:
    """
    Partially updates a member. Only the supplied fields change;
    updated_at is always refreshed. Unknown and immutable keys are ignored.

    Returns:
        True if the member exists and the update was applied
    """
    with LogContext(user_id=user_id):
        fields = {k: v for k, v in updates.items() if k in UPDATABLE_USER_FIELDS}
        fields["updated_at"] = local_now()

        users = get_users_collection()
        try:
            result = await users.update_one({"user_id": user_id}, {"$set": fields})
        except PyMongoError as e:
            logger.error(f"Error updating user: {e}")
            return False

        success = result.matched_count > 0
        if success:
            logger.info("Member updated", extra={"fields": sorted(fields)})
        else:
            logger.warning("Member not found for update")
        return success


async def delete_user(user_id: str) -> bool:
    """
    Deletes a member together with their one-per-member records
    (live subscription, intake forms, active session).
    Subscription history and scan logs are append-only and are kept.

    Returns:
        True if the member existed and was deleted
    """
    with LogContext(user_id=user_id):
        users = get_users_collection()
        try:
            result = await users.delete_one({"user_id": user_id})
        except PyMongoError as e:
            logger.error(f"Error deleting user: {e}")
            return False

        if result.deleted_count == 0:
            logger.warning("Member not found for delete")
            return False

        for collection in (
            get_subscriptions_collection(),
            get_medical_history_collection(),
            get_emergency_contacts_collection(),
            get_liability_waivers_collection(),
            get_active_sessions_collection(),
        ):
            try:
                await collection.delete_one({"user_id": user_id})
            except PyMongoError as e:
                logger.error(f"Error deleting {collection.name} record: {e}")

        logger.info("Member deleted")
        return True


async def next_user_id() -> str:
    """
    Allocates the next member ID.

    The counter is advanced with a single atomic $inc, so two concurrent
    allocations never observe the same value.

    Raises:
        StoreWriteError: If the counter cannot be advanced
    """
    counters = get_counters_collection()
    try:
        doc = await counters.find_one_and_update(
            {"_id": USER_ID_COUNTER},
            {"$inc": {"last_number": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
    except PyMongoError as e:
        logger.error(f"Error allocating member ID: {e}")
        raise StoreWriteError(f"Member ID allocation failed: {e}") from e

    user_id = format_user_id(settings.USER_ID_START + doc["last_number"])
    logger.debug(f"Allocated member ID {user_id}")
    return user_id


async def _insert_with_fresh_id(profile: Dict[str, Any]) -> User:
    last_error = None
    for _ in range(settings.MAX_ID_ALLOCATION_RETRIES):
        now = local_now()
        user = User(user_id=await next_user_id(), created_at=now, updated_at=now, **profile)
        try:
            return await add_user(user)
        except ConflictError as e:
            # Counter fell behind existing data (e.g. imported members)
            last_error = e
    raise last_error


async def enroll_member(
    profile: Dict[str, Any],
    kind: SubscriptionKind = SubscriptionKind.REGULAR,
    duration_months: int = 1,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    coaching_preference: bool = False,
    payment_status: Optional[str] = None,
    medical_history: Optional[Dict[str, Any]] = None,
    emergency_contact: Optional[Dict[str, Any]] = None,
    liability_waiver: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Registers a new member: allocates an ID, stores the profile, creates
    the first subscription of the requested kind and stores any intake
    records supplied.

    Args:
        profile: User fields (name, email, phone, ...)
        kind: regular, daily or walk-in
        duration_months: Plan length for regular subscriptions
        start_date: Subscription start (defaults to now)
        end_date: Required for walk-ins
        medical_history / emergency_contact / liability_waiver: Optional intake fields

    Returns:
        Dict with user, subscription and the stored intake records

    Raises:
        ValidationError: If a walk-in window is missing or inverted
        StoreWriteError: If the user or subscription cannot be stored
    """
    kind = SubscriptionKind(kind)
    if kind == SubscriptionKind.WALK_IN:
        start_date = start_date or local_now()
        if end_date is None:
            raise ValidationError("Walk-in subscriptions need an end date")
        if not is_valid_date_range(start_date, end_date):
            raise ValidationError("Start date cannot be after end date")

    user = await _insert_with_fresh_id(profile)

    with LogContext(user_id=user.user_id):
        if kind == SubscriptionKind.DAILY:
            subscription = subscription_service.create_daily(user.user_id, start_date)
        elif kind == SubscriptionKind.WALK_IN:
            subscription = subscription_service.create_walk_in(user.user_id, start_date, end_date)
        else:
            subscription = subscription_service.create_regular(user.user_id, duration_months, start_date)

        labels: Dict[str, Any] = {"coaching_preference": coaching_preference}
        if kind != SubscriptionKind.WALK_IN:
            labels["membership_type"] = MembershipType.NEW.value
        if payment_status:
            labels["payment_status"] = PaymentStatus(payment_status).value
            if labels["payment_status"] == PaymentStatus.PAID.value:
                labels["payment_date"] = local_now()
        subscription = subscription.model_copy(update=labels)

        await subscription_service.add_or_update_subscription(subscription)

        result: Dict[str, Any] = {
            "user": user,
            "subscription": subscription,
            "medical_history": None,
            "emergency_contact": None,
            "liability_waiver": None,
        }

        if medical_history is not None:
            result["medical_history"] = await intake_service.add_medical_history(
                MedicalHistory(user_id=user.user_id, **medical_history)
            )
        if emergency_contact is not None:
            result["emergency_contact"] = await intake_service.add_emergency_contact(
                EmergencyContact(user_id=user.user_id, **emergency_contact)
            )
        if liability_waiver is not None:
            result["liability_waiver"] = await intake_service.add_liability_waiver(
                LiabilityWaiver(user_id=user.user_id, **liability_waiver)
            )

        logger.info(f"Member enrolled with {kind.value} subscription")
        return result
