"""
gymdesk/api/scans.py

Scan and session endpoints used by front-desk scanners and displays.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Query

from gymdesk.flow.dispatcher import process_scan
from gymdesk.models.scan import ScanLog
from gymdesk.schemas.scan import ScanRequest, ScanResponse, ActiveSessionRow
from gymdesk.services import scan_log_service, session_service
from gymdesk.utils.time_utils import local_now

router = APIRouter(tags=["Scans"])


@router.post("/scans", response_model=ScanResponse)
async def scan(request: ScanRequest) -> ScanResponse:
    """
    Processes one scanned member ID.

    Validates access, checks the member in or out depending on mode and
    writes the scan log. Denied scans are a normal 200 response with
    is_valid=false.
    """
    outcome = await process_scan(request.code, request.mode)
    return ScanResponse.from_outcome(outcome)


@router.get("/scans", response_model=List[ScanLog])
async def list_scans(
    today: bool = Query(default=False, description="Only scans from today"),
    day: Optional[date] = Query(default=None, description="Only scans from this date"),
    limit: Optional[int] = Query(default=100, ge=1, le=1000),
) -> List[ScanLog]:
    """Scan log, newest first."""
    if today or day:
        return await scan_log_service.get_today_scan_logs(day)
    return await scan_log_service.get_scan_logs(limit)


@router.get("/sessions", response_model=List[ActiveSessionRow])
async def list_sessions() -> List[ActiveSessionRow]:
    """Members currently inside, latest check-in first."""
    now = local_now()
    return [
        ActiveSessionRow(
            user_id=s.user_id,
            user_name=s.user_name,
            check_in_time=s.check_in_time,
            minutes_inside=max(0, int((now - s.check_in_time).total_seconds() // 60)),
        )
        for s in await session_service.get_active_sessions()
    ]
