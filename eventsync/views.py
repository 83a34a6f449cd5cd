"""
Dashboard view models: filtering, stats, the month calendar and analytics.

These are pure functions over a list of events whose statuses are already
derived; the browser only renders what they return.
"""
import calendar
import math
from datetime import date as date_type
from typing import Iterable, List, Optional

from eventsync.models import (
    Analytics,
    AttendanceBreakdown,
    CalendarDay,
    CalendarMonth,
    Event,
    MonthlyCount,
    Stats,
)
from eventsync.status import parse_event_datetime

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
ATTENDANCE_WINDOW = 5


def filter_events(events: Iterable[Event], search: str = "", status: Optional[str] = None) -> List[Event]:
    term = (search or "").lower()
    return [
        e for e in events
        if term in e.title.lower() and (not status or status == "all" or e.status == status)
    ]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def average_attendance(events: List[Event]) -> int:
    """Mean confirmed/invited ratio across events as a rounded percentage."""
    if not events:
        return 0
    rates = []
    for event in events:
        if event.attendees:
            rates.append(len(event.confirmed()) / len(event.attendees))
        else:
            rates.append(0.0)
    return _round_half_up(sum(rates) / len(events) * 100)


def compute_stats(events: List[Event]) -> Stats:
    return Stats(
        total_events=len(events),
        upcoming_events=sum(1 for e in events if e.status == "upcoming"),
        ongoing_events=sum(1 for e in events if e.status == "ongoing"),
        completed_events=sum(1 for e in events if e.status == "completed"),
        total_attendees=sum(len(e.attendees) for e in events),
        average_attendance=average_attendance(events),
    )


def _event_day(event: Event) -> Optional[date_type]:
    when = parse_event_datetime(event.date)
    return when.date() if when else None


def calendar_month(events: List[Event], year: int, month: int) -> CalendarMonth:
    by_day = {}
    for event in events:
        day = _event_day(event)
        if day and day.year == year and day.month == month:
            by_day.setdefault(day.day, []).append(f"{event.time} - {event.title}")

    weeks = []
    # Weeks start on Sunday; 0 marks padding outside the month
    for week in calendar.Calendar(firstweekday=6).monthdayscalendar(year, month):
        row = []
        for day in week:
            if day == 0:
                row.append(None)
                continue
            entries = by_day.get(day, [])
            row.append(CalendarDay(
                day=day,
                date=date_type(year, month, day).isoformat(),
                events=entries,
                has_events=bool(entries),
            ))
        weeks.append(row)

    return CalendarMonth(
        year=year,
        month=month,
        label=f"{calendar.month_name[month]} {year}",
        weekdays=WEEKDAYS,
        weeks=weeks,
    )


def monthly_counts(events: List[Event]) -> List[MonthlyCount]:
    counts = {}
    for event in events:
        day = _event_day(event)
        if day is None:
            continue
        label = day.strftime("%b")
        counts[label] = counts.get(label, 0) + 1
    return [MonthlyCount(month=m, count=c) for m, c in counts.items()]


def attendance_overview(events: List[Event], limit: int = ATTENDANCE_WINDOW) -> List[AttendanceBreakdown]:
    rows = []
    for event in events[-limit:]:
        rows.append(AttendanceBreakdown(
            event=event.title,
            confirmed=sum(1 for a in event.attendees if a.status == "confirmed"),
            pending=sum(1 for a in event.attendees if a.status == "pending"),
            declined=sum(1 for a in event.attendees if a.status == "declined"),
        ))
    return rows


def build_analytics(events: List[Event]) -> Analytics:
    return Analytics(
        monthly_events=monthly_counts(events),
        attendance=attendance_overview(events),
        total_events=len(events),
        average_attendance=average_attendance(events),
        total_participants=sum(len(e.attendees) for e in events),
    )
