import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load .env
load_dotenv()

BROADCAST_TARGET = "Todos"
SYSTEM_SENDER = "System"

# Participants not refreshed within this window are evicted at the next sweep
INACTIVITY_TIMEOUT_MS = 10_000

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./pollchat.db"
DEFAULT_REMOVE_INTERVAL_MS = 15_000

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logging.getLogger("pollchat.config").warning(
            "Ignoring non-integer %s=%r, using %d", name, value, default
        )
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from the environment (and .env)."""

    database_url: str = DEFAULT_DATABASE_URL
    database_echo: bool = False
    remove_interval_ms: int = DEFAULT_REMOVE_INTERVAL_MS
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            database_echo=_env_flag("DATABASE_ECHO"),
            remove_interval_ms=_env_int("REMOVE_INTERVAL", DEFAULT_REMOVE_INTERVAL_MS),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", 5000),
        )


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single console handler to the ``pollchat`` logger."""
    logger = logging.getLogger("pollchat")
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(console_handler)
    return logger
