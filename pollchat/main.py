# pollchat/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .clock import Clock
from .config import Settings, configure_logging
from .database import Database
from .errors import ChatError
from .messages import MessageRouter
from .presence import PresenceManager
from .scheduler import EvictionScheduler
from .schemas import MessageIn, MessageRead, ParticipantIn, ParticipantRead

log = logging.getLogger("pollchat.main")


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    database = database or Database(settings.database_url, echo=settings.database_echo)
    configure_logging(settings.log_level)

    presence = PresenceManager(database, clock=clock)
    router = MessageRouter(database, clock=clock)
    scheduler = EvictionScheduler(presence, interval_ms=settings.remove_interval_ms, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.connect()
        scheduler.start()
        log.info("pollchat started")
        try:
            yield
        finally:
            await scheduler.stop()
            await database.close()
            log.info("pollchat stopped")

    app = FastAPI(title="pollchat", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.database = database
    app.state.presence = presence
    app.state.router = router
    app.state.scheduler = scheduler

    @app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    def get_presence(request: Request) -> PresenceManager:
        return request.app.state.presence

    def get_router(request: Request) -> MessageRouter:
        return request.app.state.router

    @app.post("/participants", status_code=status.HTTP_201_CREATED)
    async def register(body: ParticipantIn, presence: PresenceManager = Depends(get_presence)):
        await presence.register(body.name)
        return Response(status_code=status.HTTP_201_CREATED)

    @app.get("/participants", response_model=list[ParticipantRead])
    async def list_participants(presence: PresenceManager = Depends(get_presence)):
        participants = await presence.list_participants()
        return [ParticipantRead.from_record(p) for p in participants]

    @app.post("/messages", status_code=status.HTTP_201_CREATED)
    async def send_message(
        body: MessageIn,
        user: str = Header(...),
        router: MessageRouter = Depends(get_router),
    ):
        await router.send(user, body.to, body.text, body.type)
        return Response(status_code=status.HTTP_201_CREATED)

    @app.get("/messages", response_model=list[MessageRead])
    async def list_messages(
        limit: Optional[str] = None,
        user: str = Header(...),
        router: MessageRouter = Depends(get_router),
    ):
        messages = await router.list_for(user, limit)
        return [MessageRead.from_record(m) for m in messages]

    @app.put("/messages/{message_id}", response_model=MessageRead)
    async def edit_message(
        message_id: int,
        body: MessageIn,
        user: str = Header(...),
        router: MessageRouter = Depends(get_router),
    ):
        message = await router.edit(message_id, user, body.to, body.text, body.type)
        return MessageRead.from_record(message)

    @app.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_message(
        message_id: int,
        user: str = Header(...),
        router: MessageRouter = Depends(get_router),
    ):
        await router.delete(message_id, user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/status")
    async def heartbeat(user: str = Header(...), presence: PresenceManager = Depends(get_presence)):
        await presence.heartbeat(user)
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/health")
    async def health(request: Request):
        if await request.app.state.database.ping():
            return {"status": "ok"}
        return JSONResponse(status_code=503, content={"status": "down"})

    return app


def run() -> None:
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run("pollchat.main:create_app", factory=True, host=settings.host, port=settings.port)
