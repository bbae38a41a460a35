import enum
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from .errors import StoreError

log = logging.getLogger("pollchat.database")


class DatabaseState(str, enum.Enum):
    NEW = "new"
    READY = "ready"
    CLOSED = "closed"


class Database:
    """Store connection handed to the presence and message services.

    Lifecycle is ``connect() -> ready -> close()``; sessions can only be
    opened while ready.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self.state = DatabaseState.NEW
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker] = None

    @property
    def ready(self) -> bool:
        return self.state is DatabaseState.READY

    async def connect(self) -> None:
        if self.ready:
            return
        url = make_url(self.url)
        # only SQLite needs that arg
        opts = {"check_same_thread": False} if url.drivername.startswith("sqlite") else {}

        self._engine = create_async_engine(self.url, echo=self.echo, connect_args=opts)
        # Async session factory
        self._sessions = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
        except SQLAlchemyError as exc:
            await self._engine.dispose()
            self._engine = None
            self._sessions = None
            raise StoreError("Could not connect to the database") from exc

        self.state = DatabaseState.READY
        log.info("Database ready (%s)", url.render_as_string(hide_password=True))

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessions = None
        self.state = DatabaseState.CLOSED
        log.info("Database closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session; driver failures surface as ``StoreError``."""
        if not self.ready or self._sessions is None:
            raise StoreError("Database is not connected")
        async with self._sessions() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                await session.rollback()
                log.error("Store operation failed: %s", exc)
                raise StoreError() from exc

    async def ping(self) -> bool:
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
        except StoreError:
            return False
        return True
