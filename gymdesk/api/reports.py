"""
gymdesk/api/reports.py

Report endpoints: expiring members and the daily attendance summary.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from gymdesk.schemas.scan import DailySummaryResponse
from gymdesk.services import report_service

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/expiring")
async def expiring_members(
    days: Optional[int] = Query(default=None, ge=1, le=90, description="Look-ahead window in days")
):
    """Members whose active subscription ends within the window, soonest first."""
    rows = await report_service.get_expiring_members(days)
    return {"count": len(rows), "members": rows}


@router.get("/daily-summary", response_model=DailySummaryResponse)
async def daily_summary(
    day: Optional[date] = Query(default=None, description="Defaults to today")
) -> DailySummaryResponse:
    return DailySummaryResponse(**await report_service.get_daily_summary(day))
