"""Tests for event operations shared by REST and the real-time channel."""
import asyncio
import json
import typing as t
from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from conftest import event_body, names
from eventsync.models import EventPayload, RSVPRequest
from eventsync.service import EventService


@pytest_asyncio.fixture
async def running(service: EventService) -> t.AsyncIterator[EventService]:
    """The service, with its timers and background sends torn down afterwards."""
    yield service
    service.reminders.cancel_all()
    await service.hub.close()


def notices(sent: list[tuple[str, t.Any]]) -> list[str]:
    return [data.message for event, data in sent if event == "eventNotification"]


@pytest.mark.asyncio
async def test_create_broadcasts_once_then_invites(running: EventService, broadcasts: list) -> None:
    """Creation is announced once, followed by a notice and one invitation per attendee."""
    event = await running.create(EventPayload(**event_body(attendees="a@x.com, b@y.com")))

    assert names(broadcasts) == ["eventCreated", "eventNotification"]
    assert broadcasts[0][1] is event
    assert notices(broadcasts) == ['Event "Team Sync" has been created']
    assert running.reminders.pending == [event.id]

    await asyncio.sleep(0.1)
    assert notices(broadcasts)[1:] == ["Invitation sent to a@x.com", "Invitation sent to b@y.com"]


@pytest.mark.asyncio
async def test_update_unknown_event_is_silent(running: EventService, broadcasts: list) -> None:
    """Updating an id that does not exist changes and announces nothing."""
    assert await running.update(123, EventPayload(**event_body())) is None
    assert broadcasts == []


@pytest.mark.asyncio
async def test_update_replaces_and_reschedules(running: EventService, broadcasts: list) -> None:
    """An update is broadcast with a notice and re-arms the reminder from the new time."""
    event = await running.create(EventPayload(**event_body()))
    old_timer = running.reminders.timers[event.id]
    broadcasts.clear()

    later = datetime.now() + timedelta(days=30)
    updated = await running.update(event.id, EventPayload(**event_body("Renamed", when=later)))

    assert updated.id == event.id
    assert names(broadcasts) == ["eventUpdated", "eventNotification"]
    assert notices(broadcasts) == ['Event "Renamed" has been updated']
    assert running.reminders.timers[event.id] is not old_timer


@pytest.mark.asyncio
async def test_update_into_the_past_drops_the_reminder(running: EventService) -> None:
    """Moving an event inside the lead time leaves no stale timer."""
    event = await running.create(EventPayload(**event_body()))
    await running.update(event.id, EventPayload(**event_body(when=datetime.now() - timedelta(days=1))))
    assert running.reminders.pending == []


@pytest.mark.asyncio
async def test_delete_cancels_reminder(running: EventService, broadcasts: list) -> None:
    """Deletion broadcasts the id, warns dashboards and cancels the timer."""
    event = await running.create(EventPayload(**event_body()))
    broadcasts.clear()

    deleted = await running.delete(event.id)

    assert deleted.id == event.id
    assert broadcasts[0] == ("eventDeleted", event.id)
    assert broadcasts[1][1].type == "warning"
    assert running.reminders.pending == []
    assert await running.delete(event.id) is None


@pytest.mark.asyncio
async def test_rsvp_updates_existing_attendee(running: EventService, broadcasts: list) -> None:
    """RSVPs match invitees case-insensitively."""
    event = await running.create(EventPayload(**event_body(attendees="Ann@x.com")))
    broadcasts.clear()

    updated = await running.rsvp(event.id, RSVPRequest(email="ann@X.com", status="confirmed"))

    assert [(a.email, a.status) for a in updated.attendees] == [("Ann@x.com", "confirmed")]
    assert names(broadcasts) == ["eventUpdated", "eventNotification"]


@pytest.mark.asyncio
async def test_rsvp_adds_uninvited_attendee(running: EventService) -> None:
    """An RSVP from someone not on the list adds them."""
    event = await running.create(EventPayload(**event_body()))
    updated = await running.rsvp(event.id, RSVPRequest(email="new@x.com", status="declined"))
    assert [(a.email, a.status) for a in updated.attendees] == [("new@x.com", "declined")]
    assert await running.rsvp(999, RSVPRequest(email="new@x.com", status="declined")) is None


@pytest.mark.asyncio
async def test_sweep_broadcasts_only_on_change(running: EventService, broadcasts: list) -> None:
    """The sweep announces the whole list when some status moved, and stays quiet otherwise."""
    running.store.add(EventPayload(**event_body(when=datetime(2026, 1, 10, 9, 0))), now=datetime(2025, 12, 1))

    assert await running.sweep(now=datetime(2026, 2, 1)) is True
    assert names(broadcasts) == ["eventsStatusUpdate"]
    assert broadcasts[0][1][0].status == "completed"

    assert await running.sweep(now=datetime(2026, 2, 1)) is False
    assert len(broadcasts) == 1


@pytest.mark.asyncio
async def test_channel_create_update_delete(running: EventService, broadcasts: list) -> None:
    """Channel frames drive the same operations as REST."""
    await running.handle_message(json.dumps({"event": "createEvent", "data": event_body(id=5)}))
    assert running.store.get(5) is not None

    await running.handle_message(json.dumps({"event": "updateEvent", "data": event_body("Moved", id=5)}))
    assert running.store.get(5).title == "Moved"

    await running.handle_message(json.dumps({"event": "deleteEvent", "data": 5}))
    assert running.store.get(5) is None
    assert names(broadcasts).count("eventCreated") == 1
    assert names(broadcasts).count("eventUpdated") == 1
    assert names(broadcasts).count("eventDeleted") == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [
    "not json",
    json.dumps({"event": "launchRockets", "data": {}}),
    json.dumps({"event": "createEvent", "data": {"title": "No date"}}),
    json.dumps({"event": "updateEvent", "data": event_body()}),
    json.dumps({"event": "deleteEvent", "data": "abc"}),
    json.dumps({"event": "deleteEvent", "data": 404}),
])
async def test_bad_channel_frames_are_ignored(running: EventService, broadcasts: list, raw: str) -> None:
    """Malformed or unknown frames are dropped without side effects."""
    await running.handle_message(raw)
    assert broadcasts == []
    assert len(running.store) == 0


@pytest.mark.asyncio
async def test_run_sweeps_repeats_until_cancelled(running: EventService, broadcasts: list) -> None:
    """The background loop sweeps on its interval and stops cleanly when cancelled."""
    running.store.add(EventPayload(**event_body(when=datetime.now() - timedelta(days=1))), now=datetime(2000, 1, 1))

    sweeper = asyncio.create_task(running.run_sweeps(0.01))
    await asyncio.sleep(0.1)
    sweeper.cancel()
    with pytest.raises(asyncio.CancelledError):
        await sweeper

    assert names(broadcasts) == ["eventsStatusUpdate"]
    assert running.store.events[0].status == "completed"
