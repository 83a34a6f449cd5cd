import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventsync import config
from eventsync.hub import EventHub
from eventsync.ics import generate_ics, ics_filename
from eventsync.models import Analytics, CalendarMonth, Event, EventPayload, RSVPRequest, Stats
from eventsync.reminders import ReminderScheduler
from eventsync.service import EventService
from eventsync.store import EventStore
from eventsync.views import build_analytics, calendar_month, compute_stats, filter_events

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s"
)
logger = logging.getLogger(__name__)


def build_service() -> EventService:
    store = EventStore()
    hub = EventHub(push_url=config.PUSH_WEBHOOK_URL, notice_ttl=config.NOTIFICATION_TTL_SECONDS)
    reminders = ReminderScheduler(store, hub, lead=timedelta(hours=config.REMINDER_LEAD_HOURS))
    return EventService(store, hub, reminders, invitation_delay=config.INVITATION_DELAY_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    service: EventService = app.state.service
    sweeper = asyncio.create_task(service.run_sweeps(config.STATUS_SWEEP_SECONDS))
    logger.info(f"Status sweep every {config.STATUS_SWEEP_SECONDS:.0f}s")
    yield
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    service.reminders.cancel_all()
    await service.hub.close()
    logger.info("Shut down, in-memory events discarded")


def get_service(request: Request) -> EventService:
    return request.app.state.service


def create_app(service: Optional[EventService] = None) -> FastAPI:
    app = FastAPI(title="EventSync API", lifespan=lifespan)
    app.state.service = service or build_service()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- API ROUTES ---

    @app.get("/")
    async def root(request: Request):
        service = get_service(request)
        return {
            "status": "online",
            "time": datetime.now().isoformat(),
            "clients": len(service.hub),
            "events": len(service.store),
        }

    @app.get("/api/events", response_model=List[Event])
    async def list_events(request: Request, search: str = "", status: Optional[str] = None):
        events = get_service(request).store.all()
        return filter_events(events, search, status)

    @app.post("/api/events", response_model=Event, status_code=201)
    async def create_event(payload: EventPayload, request: Request):
        return await get_service(request).create(payload)

    @app.get("/api/events/range", response_model=List[Event])
    async def events_in_range(request: Request, start: str, end: str):
        return get_service(request).store.in_range(start, end)

    @app.get("/api/events/export/{event_id}")
    async def export_event(event_id: int, request: Request):
        service = get_service(request)
        event = service.store.get(event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        try:
            body = generate_ics(event)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return Response(
            content=body,
            media_type="text/calendar",
            headers={"Content-Disposition": f'attachment; filename="{ics_filename(event)}"'},
        )

    @app.put("/api/events/{event_id}", response_model=Event)
    async def update_event(event_id: int, payload: EventPayload, request: Request):
        event = await get_service(request).update(event_id, payload)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    @app.delete("/api/events/{event_id}", response_model=Event)
    async def delete_event(event_id: int, request: Request):
        event = await get_service(request).delete(event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    @app.post("/api/events/{event_id}/rsvp", response_model=Event)
    async def rsvp(event_id: int, payload: RSVPRequest, request: Request):
        event = await get_service(request).rsvp(event_id, payload)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    @app.get("/api/stats", response_model=Stats)
    async def stats(request: Request):
        return compute_stats(get_service(request).store.all())

    @app.get("/api/calendar", response_model=CalendarMonth)
    async def calendar_view(
        request: Request,
        year: Optional[int] = Query(None, ge=1, le=9999),
        month: Optional[int] = Query(None, ge=1, le=12),
    ):
        today = date.today()
        return calendar_month(get_service(request).store.all(), year or today.year, month or today.month)

    @app.get("/api/analytics", response_model=Analytics)
    async def analytics(request: Request):
        return build_analytics(get_service(request).store.all())

    # --- REAL-TIME CHANNEL ---

    @app.websocket("/ws")
    async def channel(websocket: WebSocket):
        service: EventService = websocket.app.state.service
        await service.hub.connect(websocket)
        try:
            await service.hub.send(websocket, "initialEvents", service.store.all())
            while True:
                raw = await websocket.receive_text()
                await service.handle_message(raw)
        except WebSocketDisconnect:
            pass
        finally:
            service.hub.disconnect(websocket)

    # --- GLOBAL ERROR HANDLER ---
    @app.exception_handler(Exception)
    async def catch_all(request: Request, exc: Exception):
        logger.error(f"Failing request: {request.url} - Error: {exc}")
        return JSONResponse(status_code=500, content={"status": "error", "message": str(exc)})

    return app


app = create_app()


def main():
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
