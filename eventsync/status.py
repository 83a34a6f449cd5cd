"""
Derived event lifecycle status.

Status is never stored as truth: it is recomputed from the event's date and
time against the current local time whenever events are read or swept.
"""
from datetime import datetime, timedelta
from typing import Optional

from dateutil import parser as date_parser

ONGOING_WINDOW = timedelta(hours=24)


def parse_event_datetime(date: str, time: str = "") -> Optional[datetime]:
    """Parse "<date> <time>" as a naive local datetime, None when unparseable."""
    if not date or not date.strip():
        return None
    try:
        parsed = date_parser.parse(f"{date} {time or ''}".strip())
    except (ValueError, OverflowError):
        return None
    # No timezone handling: everything is wall-clock local time
    return parsed.replace(tzinfo=None)


def derive_status(date: str, time: str = "", now: Optional[datetime] = None) -> str:
    when = parse_event_datetime(date, time)
    if when is None:
        return "upcoming"
    now = now or datetime.now()
    if when < now:
        return "completed"
    if abs(when - now) <= ONGOING_WINDOW:
        return "ongoing"
    return "upcoming"
