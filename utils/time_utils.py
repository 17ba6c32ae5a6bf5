"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Dialog session idle checks
- Timestamp formatting
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_session_expired(last_interaction: Optional[datetime], timeout_minutes: int = 30, now: Optional[datetime] = None) -> bool:
    """
    Checks if a session has expired based on last interaction time.
    """
    if not last_interaction:
        return True

    expiry_time = last_interaction + timedelta(minutes=timeout_minutes)
    return (now or utc_now()) > expiry_time


def format_timestamp(dt: Optional[datetime], format_str: str = "%Y-%m-%d %H:%M") -> str:
    """
    Formats a datetime object to string (UTC).
    """
    if not dt:
        return "N/A"
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime(format_str) + " UTC"
