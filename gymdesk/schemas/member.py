"""
gymdesk/schemas/member.py

Pydantic models for member API request/response validation.
"""

from datetime import datetime, date
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gymdesk.models.intake import MedicalHistory, EmergencyContact, LiabilityWaiver
from gymdesk.models.subscription import Subscription, SubscriptionHistory, SubscriptionKind, PaymentStatus
from gymdesk.models.user import User
from gymdesk.utils.time_utils import local_now, to_local_naive
from gymdesk.utils.validation_utils import is_valid_date_range


class MedicalHistoryIn(BaseModel):
    """Medical questionnaire answers. Omitted answers default to no."""

    heart_problems: bool = False
    blood_pressure_problems: bool = False
    chest_pain_exercising: bool = False
    asthma_breathing_problems: bool = False
    joint_problems: bool = False
    neck_back_problems: bool = False
    pregnant_recent_birth: bool = False
    other_medical_conditions: bool = False
    other_medical_details: Optional[str] = None
    smoking: bool = False
    medication: bool = False
    medication_details: Optional[str] = None


class EmergencyContactIn(BaseModel):
    contact_name: str = Field(..., min_length=1)
    contact_number: str = Field(..., min_length=1)


class LiabilityWaiverIn(BaseModel):
    signature_name: str = Field(..., min_length=1)
    signed_date: date = Field(default_factory=lambda: local_now().date())
    waiver_accepted: bool

    @field_validator("waiver_accepted")
    @classmethod
    def must_accept(cls, v: bool) -> bool:
        if not v:
            raise ValueError("The waiver must be accepted")
        return v


class MemberProfileIn(BaseModel):
    name: str = Field(..., min_length=1, description="Full name")
    email: Optional[str] = None
    phone: Optional[str] = None
    birthday: Optional[date] = None
    age: Optional[int] = Field(default=None, ge=0)
    address: Optional[str] = None
    goal: Optional[str] = None
    program_type: Optional[str] = None
    height_cm: Optional[float] = Field(default=None, gt=0)
    weight_kg: Optional[float] = Field(default=None, gt=0)

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    def to_profile(self) -> dict:
        profile = self.model_dump(exclude_none=True)
        if self.birthday:
            profile["birthday"] = self.birthday.isoformat()
        return profile


class MemberCreateRequest(MemberProfileIn):
    """Enrolment: profile, first subscription and optional intake forms."""

    kind: SubscriptionKind = SubscriptionKind.REGULAR
    duration_months: int = Field(default=1, ge=1, le=36)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = Field(default=None, description="Required for walk-ins")
    coaching_preference: bool = False
    payment_status: PaymentStatus = PaymentStatus.NOT_PAID

    medical_history: Optional[MedicalHistoryIn] = None
    emergency_contact: Optional[EmergencyContactIn] = None
    liability_waiver: Optional[LiabilityWaiverIn] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Juan Dela Cruz",
                "phone": "09171234567",
                "kind": "regular",
                "duration_months": 3,
                "payment_status": "paid",
                "emergency_contact": {"contact_name": "Maria Dela Cruz", "contact_number": "09170000000"},
            }
        }
    )


class MemberUpdateRequest(BaseModel):
    """Partial profile update; only fields present in the body change."""

    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    birthday: Optional[date] = None
    age: Optional[int] = Field(default=None, ge=0)
    address: Optional[str] = None
    goal: Optional[str] = None
    program_type: Optional[str] = None
    height_cm: Optional[float] = Field(default=None, gt=0)
    weight_kg: Optional[float] = Field(default=None, gt=0)

    def to_updates(self) -> dict:
        updates = self.model_dump(exclude_unset=True)
        if updates.get("name") is None:
            updates.pop("name", None)
        if updates.get("birthday"):
            updates["birthday"] = updates["birthday"].isoformat()
        return updates


class MedicalHistoryUpdate(BaseModel):
    heart_problems: Optional[bool] = None
    blood_pressure_problems: Optional[bool] = None
    chest_pain_exercising: Optional[bool] = None
    asthma_breathing_problems: Optional[bool] = None
    joint_problems: Optional[bool] = None
    neck_back_problems: Optional[bool] = None
    pregnant_recent_birth: Optional[bool] = None
    other_medical_conditions: Optional[bool] = None
    other_medical_details: Optional[str] = None
    smoking: Optional[bool] = None
    medication: Optional[bool] = None
    medication_details: Optional[str] = None


class EmergencyContactUpdate(BaseModel):
    contact_name: Optional[str] = Field(default=None, min_length=1)
    contact_number: Optional[str] = Field(default=None, min_length=1)


class RenewRequest(BaseModel):
    """
    Renewal of a member's subscription.

    Regular renewals start now and run duration_months; daily passes start
    now (or start_date); walk-ins need end_date and accept start_date.
    """

    kind: SubscriptionKind = SubscriptionKind.REGULAR
    duration_months: int = Field(default=1, ge=1, le=36)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    coaching_preference: Optional[bool] = None
    payment_status: Optional[PaymentStatus] = None

    @model_validator(mode="after")
    def check_walk_in_window(self) -> "RenewRequest":
        if self.kind == SubscriptionKind.WALK_IN:
            if self.end_date is None:
                raise ValueError("Walk-in renewals need an end date")
            start = to_local_naive(self.start_date) if self.start_date else local_now()
            if not is_valid_date_range(start, to_local_naive(self.end_date)):
                raise ValueError("Start date cannot be after end date")
        return self

    def labels(self) -> dict:
        labels = {}
        if self.coaching_preference is not None:
            labels["coaching_preference"] = self.coaching_preference
        if self.payment_status is not None:
            labels["payment_status"] = PaymentStatus(self.payment_status).value
            if labels["payment_status"] == PaymentStatus.PAID.value:
                labels["payment_date"] = local_now()
        return labels


class MemberRow(BaseModel):
    """One line of the member list, with its subscription status columns."""

    user: User
    subscription: Optional[Subscription] = None
    is_active: bool = False
    remaining_days: int = 0
    expiring_soon: bool = False
    checked_in: bool = False


class MemberDetail(BaseModel):
    user: User
    subscription: Optional[Subscription] = None
    is_active: bool = False
    remaining_days: int = 0
    checked_in: bool = False
    medical_history: Optional[MedicalHistory] = None
    emergency_contact: Optional[EmergencyContact] = None
    liability_waiver: Optional[LiabilityWaiver] = None


class EnrollmentResponse(BaseModel):
    user: User
    subscription: Subscription
    medical_history: Optional[MedicalHistory] = None
    emergency_contact: Optional[EmergencyContact] = None
    liability_waiver: Optional[LiabilityWaiver] = None


class SubscriptionHistoryResponse(BaseModel):
    user_id: str
    current: Optional[Subscription] = None
    history: List[SubscriptionHistory] = []
