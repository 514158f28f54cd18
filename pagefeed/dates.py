"""
Date parsing for raw publish-date text.
"""
from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as dtparser


def parse_date(text: str) -> Optional[datetime]:
    """
    Parse raw date text into an aware UTC datetime.

    Naive values are taken as UTC. Returns None for empty or
    unparseable text.
    """
    if not text or not text.strip():
        return None
    try:
        parsed = dtparser.parse(text.strip())
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
