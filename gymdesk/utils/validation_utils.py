"""
gymdesk/utils/validation_utils.py

Purpose: Input validation

- Member ID building and parsing
- Scanned code sanitization
- Date range checks for walk-in windows
"""

import re
from datetime import datetime
from typing import Optional

from gymdesk.core.config import settings


def format_user_id(number: int, prefix: Optional[str] = None) -> str:
    """
    Builds a member ID from its numeric part.

    Example: 1001 -> "BCF-1001"
    """
    prefix = prefix or settings.USER_ID_PREFIX
    return f"{prefix}-{number:04d}"


def parse_user_id_number(user_id: str) -> Optional[int]:
    """
    Extracts the numeric suffix of a member ID, or None if malformed.
    """
    match = re.match(r"^[A-Z0-9]+-(\d+)$", (user_id or "").strip().upper())
    if not match:
        return None
    return int(match.group(1))


def sanitize_scanned_code(raw: str) -> str:
    """
    Cleans a code emitted by a keyboard-wedge scanner.

    Strips surrounding whitespace and control characters some scanners
    append (tab, carriage return).
    """
    if not raw:
        return ""
    cleaned = "".join(ch for ch in raw if ch.isprintable())
    return cleaned.strip()


def is_valid_date_range(start: datetime, end: datetime) -> bool:
    """
    True when end is on or after start.
    """
    if start is None or end is None:
        return False
    return end >= start
