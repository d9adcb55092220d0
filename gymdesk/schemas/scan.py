"""
gymdesk/schemas/scan.py

Pydantic models for scan, session and report endpoints.
"""

from datetime import datetime
from typing import Optional, Dict

from pydantic import BaseModel, Field, field_validator

from gymdesk.flow.dispatcher import ScanOutcome
from gymdesk.flow.states import ScanMode, get_status_metadata
from gymdesk.models.scan import ActiveSession


class ScanRequest(BaseModel):
    """A code read by a front-desk scanner."""

    code: str = Field(..., min_length=1, description="Scanned member ID, e.g. BCF-1001")
    mode: ScanMode = ScanMode.AUTO

    @field_validator("code")
    @classmethod
    def clean_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Scanned code cannot be blank")
        return v


class ScanResponse(BaseModel):
    code: str
    mode: str
    status: str
    is_valid: bool
    action: str
    message: str
    display_color: str
    user_name: Optional[str] = None
    session: Optional[ActiveSession] = None
    logged: bool

    @classmethod
    def from_outcome(cls, outcome: ScanOutcome) -> "ScanResponse":
        validation = outcome.validation
        return cls(
            code=outcome.code,
            mode=outcome.mode,
            status=validation.status,
            is_valid=validation.is_valid,
            action=outcome.action,
            message=outcome.message,
            display_color=get_status_metadata(validation.status).display_color,
            user_name=validation.user.name if validation.user else None,
            session=outcome.session,
            logged=outcome.logged,
        )


class DailySummaryResponse(BaseModel):
    date: str
    total_scans: int
    check_ins: int
    check_outs: int
    denied: Dict[str, int]
    unique_visitors: int
    currently_inside: int
    expiring_soon: int


class ActiveSessionRow(BaseModel):
    user_id: str
    user_name: str
    check_in_time: datetime
    minutes_inside: int
