import time
from datetime import datetime
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


def format_time(ms: int) -> str:
    """Render epoch milliseconds as the ``HH:MM:SS`` shown next to messages."""
    return datetime.fromtimestamp(ms / 1000).strftime("%H:%M:%S")
