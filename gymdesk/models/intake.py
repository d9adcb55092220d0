"""
gymdesk/models/intake.py

Purpose: Intake-form records, one per member

- Medical history questionnaire
- Emergency contact
- Liability waiver
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from gymdesk.utils.time_utils import local_now


MEDICAL_HISTORY_FIELDS = (
    "heart_problems",
    "blood_pressure_problems",
    "chest_pain_exercising",
    "asthma_breathing_problems",
    "joint_problems",
    "neck_back_problems",
    "pregnant_recent_birth",
    "other_medical_conditions",
    "other_medical_details",
    "smoking",
    "medication",
    "medication_details",
)

EMERGENCY_CONTACT_FIELDS = ("contact_name", "contact_number")


class MedicalHistory(BaseModel):
    user_id: str
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
    created_at: datetime = Field(default_factory=local_now)
    updated_at: datetime = Field(default_factory=local_now)


class EmergencyContact(BaseModel):
    user_id: str
    contact_name: str
    contact_number: str
    created_at: datetime = Field(default_factory=local_now)
    updated_at: datetime = Field(default_factory=local_now)


class LiabilityWaiver(BaseModel):
    user_id: str
    signature_name: str
    signed_date: str = Field(..., description="ISO date the waiver was signed")
    waiver_accepted: bool
    created_at: datetime = Field(default_factory=local_now)
