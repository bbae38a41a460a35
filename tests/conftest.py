import pytest
import pytest_asyncio

from pollchat.database import Database
from pollchat.messages import MessageRouter
from pollchat.presence import PresenceManager

START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}"


@pytest_asyncio.fixture
async def database(database_url):
    db = Database(database_url)
    await db.connect()
    try:
        yield db
    finally:
        await db.close()


@pytest.fixture
def presence(database, clock):
    return PresenceManager(database, clock=clock)


@pytest.fixture
def router(database, clock):
    return MessageRouter(database, clock=clock)
