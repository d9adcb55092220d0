"""
gymdesk/models/user.py

Purpose: Member profile model

- Immutable PREFIX-NNNN member ID
- Contact details
- Optional demographic and physical fields
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from gymdesk.utils.time_utils import local_now


# Fields a partial update may touch; user_id and created_at never change
UPDATABLE_USER_FIELDS = (
    "name",
    "email",
    "phone",
    "birthday",
    "age",
    "address",
    "goal",
    "program_type",
    "height_cm",
    "weight_kg",
)


class User(BaseModel):
    """A gym member."""

    user_id: str = Field(..., description="Member ID, e.g. BCF-1001")
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    birthday: Optional[str] = Field(default=None, description="ISO date (YYYY-MM-DD)")
    age: Optional[int] = None
    address: Optional[str] = None
    goal: Optional[str] = None
    program_type: Optional[str] = None
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None
    created_at: datetime = Field(default_factory=local_now)
    updated_at: datetime = Field(default_factory=local_now)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user_id": "BCF-1001",
                "name": "Juan Dela Cruz",
                "email": "juan@example.com",
                "phone": "09171234567",
                "height_cm": 172.0,
                "weight_kg": 70.5,
            }
        }
    )

    def to_document(self) -> dict:
        return self.model_dump()
