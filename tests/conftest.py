"""Shared fixtures: a fresh in-memory service per test and a broadcast recorder."""
import typing as t
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from eventsync.hub import EventHub
from eventsync.main import create_app
from eventsync.reminders import ReminderScheduler
from eventsync.service import EventService
from eventsync.store import EventStore


def event_body(title: str = "Team Sync", when: t.Optional[datetime] = None, **extra: t.Any) -> dict:
    """Build an event body the way the dashboard's create form sends it."""
    when = when or datetime.now() + timedelta(days=7)
    body = {
        "title": title,
        "date": when.strftime("%Y-%m-%d"),
        "time": when.strftime("%H:%M"),
        "location": "Room 4",
        "description": "Weekly catch-up",
        "attendees": [],
    }
    body.update(extra)
    return body


@pytest.fixture
def service() -> EventService:
    store = EventStore()
    hub = EventHub()
    reminders = ReminderScheduler(store, hub)
    return EventService(store, hub, reminders, invitation_delay=0.01)


@pytest.fixture
def broadcasts(service: EventService, monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, t.Any]]:
    """Record every (event, data) pair the hub broadcasts, still delivering it."""
    sent: list[tuple[str, t.Any]] = []
    original = service.hub.broadcast

    async def recording(event: str, data: t.Any = None) -> None:
        sent.append((event, data))
        await original(event, data)

    monkeypatch.setattr(service.hub, "broadcast", recording)
    return sent


@pytest.fixture
def client(service: EventService) -> t.Iterator[TestClient]:
    with TestClient(create_app(service)) as test_client:
        yield test_client


def names(sent: list[tuple[str, t.Any]]) -> list[str]:
    return [event for event, _ in sent]
