"""
Real-time fan-out to connected dashboards.

Every message is a JSON text frame ``{"event": name, "data": payload}``.
Delivery is best effort: there is no acknowledgment, no retry and no
backpressure, and a socket that fails on send is simply dropped.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, List, Optional, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from eventsync.models import Notice, Reminder
from eventsync.push import relay_push

logger = logging.getLogger(__name__)


class EventHub:
    def __init__(self, push_url: Optional[str] = None, notice_ttl: int = 5):
        self.connections: List[WebSocket] = []
        self.push_url = push_url
        self.notice_ttl = notice_ttl
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self):
        return len(self.connections)

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.connections.append(websocket)
        logger.info(f"Client connected ({len(self.connections)} open)")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.connections:
            self.connections.remove(websocket)
            logger.info(f"Client disconnected ({len(self.connections)} open)")

    async def send(self, websocket: WebSocket, event: str, data: Any = None):
        await websocket.send_json({"event": event, "data": jsonable_encoder(data)})

    async def broadcast(self, event: str, data: Any = None):
        message = {"event": event, "data": jsonable_encoder(data)}
        for websocket in list(self.connections):
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Dropping client after failed {event} send: {e}")
                self.disconnect(websocket)

    async def notify(self, message: str, type: str = "info") -> Notice:
        notice = Notice(
            message=message,
            type=type,
            time=datetime.now().isoformat(),
            ttl=self.notice_ttl,
        )
        await self.broadcast("eventNotification", notice)
        if self.push_url:
            self.spawn(relay_push(self.push_url, "eventNotification", jsonable_encoder(notice)))
        return notice

    async def remind(self, reminder: Reminder):
        await self.broadcast("eventReminder", reminder)
        if self.push_url:
            self.spawn(relay_push(self.push_url, "eventReminder", jsonable_encoder(reminder)))

    def spawn(self, coro) -> asyncio.Task:
        """Run a coroutine in the background, holding a reference until it finishes."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def later(self, delay: float, func, *args) -> asyncio.Task:
        async def _run():
            await asyncio.sleep(delay)
            await func(*args)

        return self.spawn(_run())

    async def close(self):
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
