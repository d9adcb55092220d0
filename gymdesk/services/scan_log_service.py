"""
gymdesk/services/scan_log_service.py

Purpose: Scan log persistence

- Append-only record of every processed scan
- Malformed entries are dropped with a diagnostic instead of failing the scan
- Newest-first listings (all, today, per member)
"""

import uuid
from datetime import date
from typing import Optional, List, Dict, Any

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from gymdesk.core.logging import get_logger
from gymdesk.db.mongo import get_scan_logs_collection
from gymdesk.models.scan import ScanLog
from gymdesk.utils.time_utils import day_bounds

logger = get_logger(__name__)

REQUIRED_FIELDS = ("user_id", "action", "status", "timestamp")


async def add_scan_log(log: ScanLog) -> bool:
    """
    Appends a scan log entry.

    Entries missing a required field are not written; the problem is
    logged and the scan flow carries on.

    Returns:
        True if the entry was stored
    """
    missing = [field for field in REQUIRED_FIELDS if not getattr(log, field, None)]
    if missing:
        logger.error(f"Invalid scan log, missing {', '.join(missing)}: {log!r}")
        return False

    entry = log.model_dump()
    entry["id"] = entry.get("id") or uuid.uuid4().hex

    scan_logs = get_scan_logs_collection()
    try:
        await scan_logs.insert_one(entry)
    except PyMongoError as e:
        logger.error(f"Error adding scan log: {e}")
        return False

    return True


async def _find(query: Dict[str, Any], limit: Optional[int] = None) -> List[ScanLog]:
    scan_logs = get_scan_logs_collection()
    cursor = scan_logs.find(query).sort([("timestamp", DESCENDING), ("_id", DESCENDING)])
    if limit:
        cursor = cursor.limit(limit)
    try:
        docs = await cursor.to_list(length=None)
    except PyMongoError as e:
        logger.warning(f"Error fetching scan logs: {e}")
        return []
    return [ScanLog.model_validate(doc) for doc in docs]


async def get_scan_logs(limit: Optional[int] = None) -> List[ScanLog]:
    return await _find({}, limit)


async def get_today_scan_logs(day: Optional[date] = None) -> List[ScanLog]:
    """Scan logs of one calendar day (today by default)."""
    start, end = day_bounds(day)
    return await _find({"timestamp": {"$gte": start, "$lt": end}})


async def get_scan_logs_by_user(user_id: str, limit: Optional[int] = None) -> List[ScanLog]:
    return await _find({"user_id": user_id}, limit)
