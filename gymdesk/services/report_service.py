"""
gymdesk/services/report_service.py

Purpose: Front-desk reports

- Members whose subscription is about to run out
- Daily attendance summary built from the scan log
"""

from collections import Counter
from datetime import date, datetime
from typing import Optional, Dict, Any, List

from gymdesk.core.config import settings
from gymdesk.core.logging import get_logger
from gymdesk.models.scan import ScanAction, ScanStatus
from gymdesk.services import member_service, scan_log_service, session_service, subscription_service
from gymdesk.utils.time_utils import local_now

logger = get_logger(__name__)


async def get_expiring_members(
    threshold_days: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Members with an active subscription ending within threshold_days.

    Returns:
        Rows of {user, subscription, remaining_days}, soonest expiry first
    """
    if threshold_days is None:
        threshold_days = settings.EXPIRING_SOON_DAYS
    now = now or local_now()

    subscriptions = [
        s for s in await subscription_service.list_subscriptions()
        if subscription_service.is_expiring_soon(s, threshold_days, now)
    ]
    if not subscriptions:
        return []

    users = {u.user_id: u for u in await member_service.get_users()}

    rows = []
    for subscription in sorted(subscriptions, key=lambda s: s.end_date):
        user = users.get(subscription.user_id)
        if user is None:
            # Orphaned subscription left by a failed cascade
            continue
        rows.append({
            "user": user,
            "subscription": subscription,
            "remaining_days": subscription_service.remaining_days(subscription, now),
        })
    return rows


async def get_daily_summary(day: Optional[date] = None) -> Dict[str, Any]:
    """
    Attendance summary for one calendar day (today by default).

    Returns:
        Dict with check-ins, check-outs, denied scans by status,
        distinct visitors, members inside now and expiring count
    """
    day = day or local_now().date()
    logs = await scan_log_service.get_today_scan_logs(day)

    actions = Counter(log.action for log in logs)
    denied = Counter(log.status for log in logs if log.status != ScanStatus.SUCCESS)
    visitors = {log.user_id for log in logs if log.action == ScanAction.CHECK_IN}

    inside = await session_service.get_active_sessions()
    expiring = await subscription_service.expiring_user_ids()

    summary = {
        "date": day.isoformat(),
        "total_scans": len(logs),
        "check_ins": actions.get(ScanAction.CHECK_IN.value, 0),
        "check_outs": actions.get(ScanAction.CHECK_OUT.value, 0),
        "denied": {
            ScanStatus.EXPIRED.value: denied.get(ScanStatus.EXPIRED.value, 0),
            ScanStatus.INVALID.value: denied.get(ScanStatus.INVALID.value, 0),
        },
        "unique_visitors": len(visitors),
        "currently_inside": len(inside),
        "expiring_soon": len(expiring),
    }
    logger.debug(f"Daily summary for {summary['date']}: {summary['total_scans']} scans")
    return summary
