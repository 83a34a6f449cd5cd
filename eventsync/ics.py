"""
iCalendar export for a single event (RFC 5545).

Event times carry no timezone, so DTSTART/DTEND are written as floating
local times; only DTSTAMP is UTC.
"""
import re
from datetime import datetime, timedelta
from typing import Optional

from dateutil import tz as dateutil_tz

from eventsync.models import Event
from eventsync.status import parse_event_datetime

DEFAULT_DURATION = timedelta(hours=1)
PRODID = "-//EventSync//Event Dashboard//EN"


def _escape_ical_text(text: str) -> str:
    """Escape backslashes, semicolons, commas and newlines."""
    if text is None:
        return ""
    text = text.replace("\\", "\\\\")
    text = text.replace(";", "\\;")
    text = text.replace(",", "\\,")
    text = text.replace("\r", "")
    return text.replace("\n", "\\n")


def _fold(line: str) -> str:
    # Content lines are limited to 75 octets; continuations start with a space
    parts = []
    current = ""
    for char in line:
        limit = 75 if not parts else 74
        if len((current + char).encode("utf-8")) > limit:
            parts.append(current)
            current = char
        else:
            current += char
    parts.append(current)
    return "\r\n ".join(parts)


def _format_local(dt: datetime) -> str:
    return dt.strftime("%Y%m%dT%H%M%S")


def _format_utc(dt: datetime) -> str:
    return dt.strftime("%Y%m%dT%H%M%SZ")


def ics_filename(event: Event) -> str:
    safe_title = re.sub(r"[^\w\s-]", "", event.title, flags=re.ASCII).strip()
    return f"{safe_title or 'event'}.ics"


def generate_ics(event: Event, now: Optional[datetime] = None) -> str:
    start = parse_event_datetime(event.date, event.time)
    if start is None:
        raise ValueError(f"Cannot parse event date/time '{event.date} {event.time}'")
    try:
        end = start + DEFAULT_DURATION
    except OverflowError:
        raise ValueError(f"Event date/time '{event.date} {event.time}' is out of range")
    stamp = now or datetime.now(dateutil_tz.tzutc())

    description = event.description or ""
    if event.attendees:
        attendees = ", ".join(f"{a.email} ({a.status})" for a in event.attendees)
        description = f"{description}\n\nAttendees: {attendees}".strip()

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{event.id}@eventsync",
        f"DTSTAMP:{_format_utc(stamp)}",
        f"DTSTART:{_format_local(start)}",
        f"DTEND:{_format_local(end)}",
        f"SUMMARY:{_escape_ical_text(event.title)}",
    ]
    if description:
        lines.append(f"DESCRIPTION:{_escape_ical_text(description)}")
    if event.location:
        lines.append(f"LOCATION:{_escape_ical_text(event.location)}")
    lines += ["END:VEVENT", "END:VCALENDAR"]

    return "\r\n".join(_fold(line) for line in lines) + "\r\n"
