import time
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

AttendeeStatus = Literal["pending", "confirmed", "declined"]
EventStatus = Literal["upcoming", "ongoing", "completed"]
NoticeType = Literal["info", "success", "warning"]

_last_id = 0


def timestamp_id() -> int:
    """Millisecond wall-clock timestamp, the id scheme dashboards use.

    Strictly increasing within the process, so ids handed out in the same
    millisecond stay distinct.
    """
    global _last_id
    _last_id = max(int(time.time() * 1000), _last_id + 1)
    return _last_id


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- EVENTS ---
class Attendee(BaseModel):
    id: Union[int, float, str] = Field(default_factory=timestamp_id)
    email: str
    status: AttendeeStatus = "pending"


class EventPayload(BaseModel):
    """Event body as sent by REST clients and over the channel."""
    id: Optional[int] = None
    title: str
    date: str
    time: str = ""
    location: str = ""
    description: str = ""
    attendees: List[Attendee] = []
    notifications: List[Any] = []

    @field_validator("attendees", mode="before")
    @classmethod
    def split_emails(cls, value):
        # The create form sends "a@x.com, b@y.com"
        if isinstance(value, str):
            emails = [e.strip() for e in value.split(",") if e.strip()]
            return [{"id": timestamp_id(), "email": email} for email in emails]
        return value


class Event(EventPayload):
    id: int
    status: EventStatus = "upcoming"

    def confirmed(self) -> List[Attendee]:
        return [a for a in self.attendees if a.status == "confirmed"]


class RSVPRequest(BaseModel):
    email: str
    status: AttendeeStatus


# --- CHANNEL ---
class ChannelMessage(BaseModel):
    event: str
    data: Any = None


class Notice(BaseModel):
    id: int = Field(default_factory=timestamp_id)
    message: str
    type: NoticeType = "info"
    time: str
    ttl: int = 5


class Reminder(CamelModel):
    event_id: int
    attendee_email: str
    message: str


# --- STATS & VIEWS ---
class Stats(CamelModel):
    total_events: int = 0
    upcoming_events: int = 0
    ongoing_events: int = 0
    completed_events: int = 0
    total_attendees: int = 0
    average_attendance: int = 0


class CalendarDay(CamelModel):
    day: int
    date: str
    events: List[str] = []
    has_events: bool = False


class CalendarMonth(CamelModel):
    year: int
    month: int
    label: str
    weekdays: List[str]
    weeks: List[List[Optional[CalendarDay]]]


class MonthlyCount(BaseModel):
    month: str
    count: int


class AttendanceBreakdown(BaseModel):
    event: str
    confirmed: int = 0
    pending: int = 0
    declined: int = 0


class Analytics(CamelModel):
    monthly_events: List[MonthlyCount] = []
    attendance: List[AttendanceBreakdown] = []
    total_events: int = 0
    average_attendance: int = 0
    total_participants: int = 0
