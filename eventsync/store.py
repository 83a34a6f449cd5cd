import logging
from datetime import datetime
from typing import List, Optional

from eventsync.models import Event, EventPayload, timestamp_id
from eventsync.status import derive_status, parse_event_datetime

logger = logging.getLogger(__name__)


# In-memory storage, lost on restart.
# Mutations run to completion on the event loop, so no locking is needed.
class EventStore:
    def __init__(self):
        self.events: List[Event] = []

    def __len__(self):
        return len(self.events)

    def fresh(self, event: Event, now: Optional[datetime] = None) -> Event:
        status = derive_status(event.date, event.time, now)
        if status == event.status:
            return event
        return event.model_copy(update={"status": status})

    def all(self, now: Optional[datetime] = None) -> List[Event]:
        """Every event with its status derived for `now`; stored events are left untouched."""
        return [self.fresh(e, now) for e in self.events]

    def get(self, event_id: int) -> Optional[Event]:
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    def add(self, payload: EventPayload, now: Optional[datetime] = None) -> Event:
        event = Event(
            **payload.model_dump(exclude={"id"}),
            id=payload.id if payload.id is not None else timestamp_id(),
            status=derive_status(payload.date, payload.time, now),
        )
        self.events.append(event)
        logger.info(f"Stored event {event.id} ({event.title}), {len(self.events)} total")
        return event

    def replace(self, event_id: int, payload: EventPayload, now: Optional[datetime] = None) -> Optional[Event]:
        for index, current in enumerate(self.events):
            if current.id == event_id:
                event = Event(
                    **payload.model_dump(exclude={"id"}),
                    id=event_id,
                    status=derive_status(payload.date, payload.time, now),
                )
                self.events[index] = event
                return event
        return None

    def remove(self, event_id: int) -> Optional[Event]:
        event = self.get(event_id)
        if event is None:
            return None
        self.events = [e for e in self.events if e.id != event_id]
        return event

    def refresh_statuses(self, now: Optional[datetime] = None) -> bool:
        """Store freshly derived statuses, True when any of them changed."""
        updated = False
        for index, event in enumerate(self.events):
            fresh = self.fresh(event, now)
            if fresh is not event:
                self.events[index] = fresh
                updated = True
        return updated

    def in_range(self, start: str, end: str, now: Optional[datetime] = None) -> List[Event]:
        """Events whose date falls within [start, end], both inclusive."""
        lower = parse_event_datetime(start)
        upper = parse_event_datetime(end)
        if lower is None or upper is None:
            return []
        matches = []
        for event in self.all(now):
            when = parse_event_datetime(event.date)
            if when is not None and lower <= when <= upper:
                matches.append(event)
        return matches

    def clear(self):
        self.events = []
