"""
gymdesk/models/subscription.py

Purpose: Subscription and subscription-history models

- One record type for all three creation paths, tagged by kind
- Status and payment labels
- Archive entries written when a live subscription is overwritten
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gymdesk.utils.time_utils import local_now, to_local_naive


class SubscriptionKind(str, Enum):
    """How the start/end window of a subscription was derived."""

    REGULAR = "regular"     # N calendar months from start
    DAILY = "daily"         # expires at midnight after start
    WALK_IN = "walk-in"     # caller-chosen window


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class MembershipType(str, Enum):
    NEW = "new"
    RENEWAL = "renewal"
    WALK_IN = "walk-in"


class PaymentStatus(str, Enum):
    PAID = "paid"
    NOT_PAID = "not paid"


class Subscription(BaseModel):
    """The live subscription of a member (at most one per user_id)."""

    user_id: str
    kind: SubscriptionKind = SubscriptionKind.REGULAR
    start_date: datetime
    end_date: datetime
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    plan_duration: Optional[str] = Field(
        default=None,
        description='"1 month", "6 months", "daily"; None for walk-ins'
    )
    membership_type: Optional[MembershipType] = None
    coaching_preference: bool = False
    payment_status: PaymentStatus = PaymentStatus.NOT_PAID
    payment_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=local_now)

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    @field_validator("start_date", "end_date", "payment_date", "created_at")
    @classmethod
    def normalize_datetimes(cls, v):
        return to_local_naive(v)

    def to_document(self) -> dict:
        return self.model_dump()


class SubscriptionHistory(Subscription):
    """
    Verbatim copy of an overwritten subscription.
    Written once by the archive step, never updated.
    """

    id: str
    archived_at: datetime = Field(default_factory=local_now)

    @classmethod
    def from_subscription(cls, subscription: Subscription, archived_at: Optional[datetime] = None) -> "SubscriptionHistory":
        archived_at = archived_at or local_now()
        entry_id = f"{subscription.user_id}-{int(archived_at.timestamp() * 1000)}"
        return cls(
            **subscription.model_dump(),
            id=entry_id,
            archived_at=archived_at,
        )

    def to_subscription(self) -> Subscription:
        return Subscription(**self.model_dump(exclude={"id", "archived_at"}))
