"""
gymdesk/models/scan.py

Purpose: Check-in/out records

- ScanLog: append-only event per processed scan
- ActiveSession: exists exactly while a member is inside
- AccessValidation: result of validating a scanned member ID
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gymdesk.models.subscription import Subscription
from gymdesk.models.user import User
from gymdesk.utils.time_utils import local_now, to_local_naive


class AccessStatus(str, Enum):
    GRANTED = "granted"
    EXPIRED = "expired"
    INVALID = "invalid"
    ALREADY_CHECKED_IN = "already-checked-in"


class ScanAction(str, Enum):
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"
    NOT_APPLICABLE = "not-applicable"


class ScanStatus(str, Enum):
    SUCCESS = "success"
    EXPIRED = "expired"
    INVALID = "invalid"


class ScanLog(BaseModel):
    id: Optional[str] = None
    user_id: str
    user_name: str = "Unknown"
    timestamp: datetime = Field(default_factory=local_now)
    action: ScanAction
    status: ScanStatus

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v):
        return to_local_naive(v)


class ActiveSession(BaseModel):
    user_id: str
    user_name: str
    check_in_time: datetime = Field(default_factory=local_now)

    @field_validator("check_in_time")
    @classmethod
    def normalize_check_in_time(cls, v):
        return to_local_naive(v)


class AccessValidation(BaseModel):
    is_valid: bool
    status: AccessStatus
    message: str
    user: Optional[User] = None
    subscription: Optional[Subscription] = None

    model_config = ConfigDict(use_enum_values=True)
