"""
Event operations shared by the REST API and the real-time channel.

Each mutation changes the store, broadcasts the new state exactly once and
follows it with a human-readable notice, so dashboards stay in sync no matter
which surface the change came through.
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from eventsync.hub import EventHub
from eventsync.models import Attendee, ChannelMessage, Event, EventPayload, RSVPRequest
from eventsync.reminders import ReminderScheduler
from eventsync.store import EventStore

logger = logging.getLogger(__name__)


class EventService:
    def __init__(
        self,
        store: EventStore,
        hub: EventHub,
        reminders: ReminderScheduler,
        invitation_delay: float = 1.0,
    ):
        self.store = store
        self.hub = hub
        self.reminders = reminders
        self.invitation_delay = invitation_delay

    async def create(self, payload: EventPayload) -> Event:
        event = self.store.add(payload)
        await self.hub.broadcast("eventCreated", event)
        await self.hub.notify(f'Event "{event.title}" has been created', "success")
        for attendee in event.attendees:
            self.hub.later(self.invitation_delay, self.hub.notify, f"Invitation sent to {attendee.email}", "info")
        self.reminders.schedule(event)
        return event

    async def update(self, event_id: int, payload: EventPayload) -> Optional[Event]:
        event = self.store.replace(event_id, payload)
        if event is None:
            return None
        await self.hub.broadcast("eventUpdated", event)
        await self.hub.notify(f'Event "{event.title}" has been updated', "success")
        self.reminders.schedule(event)
        logger.info(f"Updated event {event_id}")
        return event

    async def delete(self, event_id: int) -> Optional[Event]:
        event = self.store.remove(event_id)
        if event is None:
            return None
        self.reminders.cancel(event_id)
        await self.hub.broadcast("eventDeleted", event_id)
        await self.hub.notify(f'Event "{event.title}" has been deleted', "warning")
        logger.info(f"Deleted event {event_id}")
        return event

    async def rsvp(self, event_id: int, request: RSVPRequest) -> Optional[Event]:
        event = self.store.get(event_id)
        if event is None:
            return None
        email = request.email.strip()
        for attendee in event.attendees:
            if attendee.email.lower() == email.lower():
                attendee.status = request.status
                break
        else:
            event.attendees.append(Attendee(email=email, status=request.status))
        await self.hub.broadcast("eventUpdated", self.store.fresh(event))
        await self.hub.notify(f'{email} is {request.status} for "{event.title}"', "info")
        return self.store.fresh(event)

    # --- STATUS SWEEP ---
    async def sweep(self, now: Optional[datetime] = None) -> bool:
        if not self.store.refresh_statuses(now):
            return False
        logger.info("Event statuses changed, broadcasting update")
        await self.hub.broadcast("eventsStatusUpdate", self.store.events)
        return True

    async def run_sweeps(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            await self.sweep()

    # --- CHANNEL ---
    async def handle_message(self, raw: str):
        """Dispatch one client frame; malformed frames are logged and dropped."""
        try:
            message = ChannelMessage.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed channel message: {e}")
            return

        try:
            if message.event in ("createEvent", "updateEvent"):
                payload = EventPayload.model_validate(message.data)
            elif message.event == "deleteEvent":
                event_id = int(message.data)
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid {message.event} payload: {e}")
            return

        if message.event == "createEvent":
            await self.create(payload)
        elif message.event == "updateEvent":
            if payload.id is None:
                logger.warning("Ignoring updateEvent without an id")
            elif await self.update(payload.id, payload) is None:
                logger.info(f"updateEvent for unknown event {payload.id}")
        elif message.event == "deleteEvent":
            if await self.delete(event_id) is None:
                logger.info(f"deleteEvent for unknown event {event_id}")
        else:
            logger.warning(f"Ignoring unknown channel event '{message.event}'")