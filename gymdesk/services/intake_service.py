"""
gymdesk/services/intake_service.py

Purpose: Intake-form records

- Medical history questionnaire (create / partial update)
- Emergency contact (create / partial update)
- Liability waiver (create once)
"""

from typing import Optional, Dict, Any, Type, TypeVar

from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError, PyMongoError

from gymdesk.core.exceptions import ConflictError, StoreWriteError
from gymdesk.core.logging import get_logger
from gymdesk.db.mongo import (
    get_medical_history_collection,
    get_emergency_contacts_collection,
    get_liability_waivers_collection,
)
from gymdesk.models.intake import (
    MedicalHistory,
    EmergencyContact,
    LiabilityWaiver,
    MEDICAL_HISTORY_FIELDS,
    EMERGENCY_CONTACT_FIELDS,
)
from gymdesk.utils.time_utils import local_now

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


async def _get_record(collection, model: Type[RecordT], user_id: str) -> Optional[RecordT]:
    try:
        doc = await collection.find_one({"user_id": user_id})
    except PyMongoError as e:
        logger.warning(f"Error fetching {collection.name} for {user_id}: {e}")
        return None
    if not doc:
        return None
    return model.model_validate(doc)


async def _add_record(collection, record: RecordT, label: str) -> RecordT:
    try:
        await collection.insert_one(record.model_dump())
    except DuplicateKeyError as e:
        raise ConflictError(f"{label} already exists for {record.user_id}") from e
    except PyMongoError as e:
        logger.error(f"Error adding {label} for {record.user_id}: {e}")
        raise StoreWriteError(f"{label} insert failed: {e}") from e

    logger.info(f"{label} stored for {record.user_id}")
    return record


async def _update_record(collection, user_id: str, updates: Dict[str, Any], allowed: tuple, label: str) -> bool:
    fields = {k: v for k, v in updates.items() if k in allowed}
    fields["updated_at"] = local_now()

    try:
        result = await collection.update_one({"user_id": user_id}, {"$set": fields})
    except PyMongoError as e:
        logger.error(f"Error updating {label} for {user_id}: {e}")
        return False

    return result.matched_count > 0


# ==============================
# MEDICAL HISTORY
# ==============================

async def get_medical_history(user_id: str) -> Optional[MedicalHistory]:
    return await _get_record(get_medical_history_collection(), MedicalHistory, user_id)


async def add_medical_history(record: MedicalHistory) -> MedicalHistory:
    """
    Stores a member's medical questionnaire.

    Raises:
        ConflictError: If one already exists for the member
        StoreWriteError: If the insert fails
    """
    return await _add_record(get_medical_history_collection(), record, "Medical history")


async def update_medical_history(user_id: str, updates: Dict[str, Any]) -> bool:
    """
    Partial update; only supplied answers change.

    Returns:
        True if a record exists and was updated
    """
    return await _update_record(
        get_medical_history_collection(), user_id, updates, MEDICAL_HISTORY_FIELDS, "medical history"
    )


# ==============================
# EMERGENCY CONTACTS
# ==============================

async def get_emergency_contact(user_id: str) -> Optional[EmergencyContact]:
    return await _get_record(get_emergency_contacts_collection(), EmergencyContact, user_id)


async def add_emergency_contact(record: EmergencyContact) -> EmergencyContact:
    return await _add_record(get_emergency_contacts_collection(), record, "Emergency contact")


async def update_emergency_contact(user_id: str, updates: Dict[str, Any]) -> bool:
    return await _update_record(
        get_emergency_contacts_collection(), user_id, updates, EMERGENCY_CONTACT_FIELDS, "emergency contact"
    )


# ==============================
# LIABILITY WAIVERS
# ==============================

async def get_liability_waiver(user_id: str) -> Optional[LiabilityWaiver]:
    return await _get_record(get_liability_waivers_collection(), LiabilityWaiver, user_id)


async def add_liability_waiver(record: LiabilityWaiver) -> LiabilityWaiver:
    """Waivers are signed once and never updated."""
    return await _add_record(get_liability_waivers_collection(), record, "Liability waiver")
