"""
gymdesk/api/members.py

Member API Endpoints
====================

Enrolment, profile maintenance, renewals and intake forms for the
front-desk application.

Architecture:
- Thin layer over the services; no business rules here
- Services return None for missing records; this layer turns that into 404
- Request validation via Pydantic schemas
"""

from typing import List, Optional

from fastapi import APIRouter, Query, status

from gymdesk.core.config import settings
from gymdesk.core.exceptions import ResourceNotFoundError, StoreWriteError, ValidationError
from gymdesk.models.intake import MedicalHistory, EmergencyContact, LiabilityWaiver
from gymdesk.models.scan import ScanLog
from gymdesk.models.subscription import Subscription, SubscriptionKind
from gymdesk.models.user import User
from gymdesk.schemas.member import (
    MemberCreateRequest,
    MemberUpdateRequest,
    MemberRow,
    MemberDetail,
    EnrollmentResponse,
    RenewRequest,
    MedicalHistoryUpdate,
    EmergencyContactUpdate,
    LiabilityWaiverIn,
    SubscriptionHistoryResponse,
)
from gymdesk.services import (
    intake_service,
    member_service,
    scan_log_service,
    session_service,
    subscription_service,
)
from gymdesk.utils.time_utils import local_now, to_local_naive

router = APIRouter(prefix="/members", tags=["Members"])


async def _require_user(user_id: str) -> User:
    user = await member_service.get_user(user_id)
    if not user:
        raise ResourceNotFoundError(f"Member {user_id} not found")
    return user


# ============================================================================
# MEMBERS
# ============================================================================

@router.post("", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll_member(request: MemberCreateRequest) -> EnrollmentResponse:
    """
    Registers a new member with their first subscription.

    Flow:
    1. Allocate the next member ID
    2. Store the profile
    3. Create the subscription of the requested kind
    4. Store any intake forms sent along
    """
    result = await member_service.enroll_member(
        profile=request.to_profile(),
        kind=request.kind,
        duration_months=request.duration_months,
        start_date=to_local_naive(request.start_date),
        end_date=to_local_naive(request.end_date),
        coaching_preference=request.coaching_preference,
        payment_status=request.payment_status,
        medical_history=request.medical_history.model_dump() if request.medical_history else None,
        emergency_contact=request.emergency_contact.model_dump() if request.emergency_contact else None,
        liability_waiver=request.liability_waiver.model_dump(mode="json") if request.liability_waiver else None,
    )
    return EnrollmentResponse(**result)


@router.get("", response_model=List[MemberRow])
async def list_members(
    search: Optional[str] = Query(default=None, description="Name, email or phone fragment")
) -> List[MemberRow]:
    """
    Member list with subscription status columns.

    Subscriptions are loaded once for the whole page and looked up per row.
    """
    users = await member_service.search_users(search) if search else await member_service.get_users()
    lookup = await subscription_service.build_subscription_lookup(u.user_id for u in users)
    inside = {s.user_id for s in await session_service.get_active_sessions()}
    now = local_now()

    rows = []
    for user in users:
        subscription = lookup.get(user.user_id)
        rows.append(MemberRow(
            user=user,
            subscription=subscription,
            is_active=subscription_service.is_active(subscription, now),
            remaining_days=subscription_service.remaining_days(subscription, now),
            expiring_soon=subscription_service.is_expiring_soon(
                subscription, settings.MEMBER_LIST_EXPIRING_DAYS, now
            ),
            checked_in=user.user_id in inside,
        ))
    return rows


@router.get("/{user_id}", response_model=MemberDetail)
async def get_member(user_id: str) -> MemberDetail:
    """Member profile with subscription, intake forms and check-in state."""
    user = await _require_user(user_id)
    subscription = await subscription_service.get_subscription(user_id)

    return MemberDetail(
        user=user,
        subscription=subscription,
        is_active=subscription_service.is_active(subscription),
        remaining_days=subscription_service.remaining_days(subscription),
        checked_in=await session_service.is_user_checked_in(user_id),
        medical_history=await intake_service.get_medical_history(user_id),
        emergency_contact=await intake_service.get_emergency_contact(user_id),
        liability_waiver=await intake_service.get_liability_waiver(user_id),
    )


@router.patch("/{user_id}", response_model=User)
async def update_member(user_id: str, request: MemberUpdateRequest) -> User:
    await _require_user(user_id)

    updates = request.to_updates()
    if not await member_service.update_user(user_id, updates):
        raise StoreWriteError(f"Member {user_id} could not be updated")

    return await _require_user(user_id)


@router.delete("/{user_id}")
async def delete_member(user_id: str):
    await _require_user(user_id)

    if not await member_service.delete_user(user_id):
        raise StoreWriteError(f"Member {user_id} could not be deleted")

    return {"deleted": True, "user_id": user_id}


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================

@router.post("/{user_id}/renew", response_model=Subscription)
async def renew_subscription(user_id: str, request: RenewRequest) -> Subscription:
    """
    Renews a member's subscription. The current one is archived first.
    """
    await _require_user(user_id)
    labels = request.labels()
    kind = SubscriptionKind(request.kind)

    if kind == SubscriptionKind.DAILY:
        return await subscription_service.renew_daily(
            user_id, to_local_naive(request.start_date), **labels
        )
    if kind == SubscriptionKind.WALK_IN:
        return await subscription_service.renew_walk_in(
            user_id,
            end_date=to_local_naive(request.end_date),
            start_date=to_local_naive(request.start_date),
            **labels
        )
    return await subscription_service.renew_regular(user_id, request.duration_months, **labels)


@router.get("/{user_id}/subscription-history", response_model=SubscriptionHistoryResponse)
async def get_subscription_history(user_id: str) -> SubscriptionHistoryResponse:
    await _require_user(user_id)
    return SubscriptionHistoryResponse(
        user_id=user_id,
        current=await subscription_service.get_subscription(user_id),
        history=await subscription_service.get_subscription_history(user_id),
    )


@router.get("/{user_id}/scans", response_model=List[ScanLog])
async def get_member_scans(
    user_id: str,
    limit: Optional[int] = Query(default=50, ge=1, le=500)
) -> List[ScanLog]:
    await _require_user(user_id)
    return await scan_log_service.get_scan_logs_by_user(user_id, limit)


# ============================================================================
# INTAKE FORMS
# ============================================================================

@router.put("/{user_id}/medical-history", response_model=MedicalHistory)
async def put_medical_history(user_id: str, request: MedicalHistoryUpdate) -> MedicalHistory:
    """Creates the questionnaire, or updates only the answers sent."""
    await _require_user(user_id)

    if await intake_service.get_medical_history(user_id):
        if not await intake_service.update_medical_history(user_id, request.model_dump(exclude_none=True)):
            raise StoreWriteError("Medical history could not be updated")
        return await intake_service.get_medical_history(user_id)

    return await intake_service.add_medical_history(
        MedicalHistory(user_id=user_id, **request.model_dump(exclude_none=True))
    )


@router.put("/{user_id}/emergency-contact", response_model=EmergencyContact)
async def put_emergency_contact(user_id: str, request: EmergencyContactUpdate) -> EmergencyContact:
    await _require_user(user_id)

    if await intake_service.get_emergency_contact(user_id):
        if not await intake_service.update_emergency_contact(user_id, request.model_dump(exclude_none=True)):
            raise StoreWriteError("Emergency contact could not be updated")
        return await intake_service.get_emergency_contact(user_id)

    if not request.contact_name or not request.contact_number:
        raise ValidationError("contact_name and contact_number are required for a new emergency contact")

    return await intake_service.add_emergency_contact(
        EmergencyContact(user_id=user_id, contact_name=request.contact_name, contact_number=request.contact_number)
    )


@router.post("/{user_id}/waiver", response_model=LiabilityWaiver, status_code=status.HTTP_201_CREATED)
async def sign_waiver(user_id: str, request: LiabilityWaiverIn) -> LiabilityWaiver:
    """Records the signed liability waiver (once per member)."""
    await _require_user(user_id)
    return await intake_service.add_liability_waiver(
        LiabilityWaiver(user_id=user_id, **request.model_dump(mode="json"))
    )
