"""Rendering of the status feed for terminal output"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from dateutil.parser import parse as parse_date

from .models import StatusRecord

EMPTY_FEED_MESSAGE = "No status updates yet. Be the first to share what you're up to!"


def time_ago(timestamp: str, now: Optional[datetime] = None) -> str:
    """
    Describe how long ago `timestamp` was.

    Args:
        timestamp: Any date string dateutil understands (ISO-8601 from the backend)
        now: Reference time, defaults to the current UTC time

    Returns:
        "just now", "5m ago", "3h ago", "2d ago" or "unknown"
    """
    try:
        then = parse_date(timestamp)
    except (ValueError, OverflowError, TypeError):
        return "unknown"

    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    diff_mins = int((now - then).total_seconds() // 60)
    if diff_mins < 1:
        return "just now"
    if diff_mins < 60:
        return f"{diff_mins}m ago"

    diff_hours = diff_mins // 60
    if diff_hours < 24:
        return f"{diff_hours}h ago"

    return f"{diff_hours // 24}d ago"


def user_count_text(count: int) -> str:
    return f"{count} users online"


def render_feed(records: Sequence[StatusRecord], now: Optional[datetime] = None) -> List[str]:
    """Format one line per status, or the empty-feed message"""
    if not records:
        return [f"💭 {EMPTY_FEED_MESSAGE}"]

    width = max(len(r.name) for r in records)
    return [
        f"{r.name:<{width}}  {r.status}  ({time_ago(r.timestamp, now)})"
        for r in records
    ]
