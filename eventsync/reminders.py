"""
One reminder timer per event.

A reminder fires ``lead`` before the event starts and goes out to every
attendee who is confirmed at firing time. Rescheduling an event replaces its
timer and deleting it cancels the timer, so edited or removed events never
produce stale reminders. Timers live only in memory.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from eventsync.hub import EventHub
from eventsync.models import Event, Reminder
from eventsync.status import parse_event_datetime
from eventsync.store import EventStore

logger = logging.getLogger(__name__)


class ReminderScheduler:
    def __init__(self, store: EventStore, hub: EventHub, lead: timedelta = timedelta(hours=24)):
        self.store = store
        self.hub = hub
        self.lead = lead
        self.timers: Dict[int, asyncio.Task] = {}

    @property
    def pending(self) -> List[int]:
        return sorted(self.timers)

    def schedule(self, event: Event, now: Optional[datetime] = None) -> Optional[float]:
        """(Re)arm the event's timer; returns the delay in seconds, or None if nothing was armed."""
        self.cancel(event.id)
        when = parse_event_datetime(event.date, event.time)
        if when is None:
            logger.warning(f"No reminder for event {event.id}: cannot parse '{event.date} {event.time}'")
            return None
        try:
            delay = (when - self.lead - (now or datetime.now())).total_seconds()
        except OverflowError:
            logger.warning(f"No reminder for event {event.id}: '{event.date} {event.time}' is out of range")
            return None
        if delay <= 0:
            return None
        self.timers[event.id] = asyncio.create_task(self._fire_later(event.id, delay))
        logger.info(f"Reminder for event {event.id} scheduled in {delay:.0f}s")
        return delay

    async def _fire_later(self, event_id: int, delay: float):
        await asyncio.sleep(delay)
        self.timers.pop(event_id, None)
        await self.fire(event_id)

    async def fire(self, event_id: int) -> int:
        event = self.store.get(event_id)
        if event is None:
            return 0
        confirmed = event.confirmed()
        for attendee in confirmed:
            await self.hub.remind(Reminder(
                event_id=event.id,
                attendee_email=attendee.email,
                message=f'Reminder: "{event.title}" is happening tomorrow at {event.time}',
            ))
        logger.info(f"Sent {len(confirmed)} reminder(s) for event {event_id}")
        return len(confirmed)

    def cancel(self, event_id: int) -> bool:
        task = self.timers.pop(event_id, None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self):
        for event_id in list(self.timers):
            self.cancel(event_id)
