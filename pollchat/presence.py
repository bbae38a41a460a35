"""
Presence
--------
Participant registration, heartbeats and the inactivity sweep.

A participant is alive while its ``last_status`` keeps being refreshed by
heartbeats. The sweep run by :class:`pollchat.scheduler.EvictionScheduler`
removes everyone older than the cutoff and leaves a "left" notice behind for
each of them.
"""
import logging
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from .clock import Clock, format_time, now_ms
from .config import BROADCAST_TARGET, SYSTEM_SENDER
from .database import Database
from .errors import ConflictError, NotFoundError
from .models import Message, MessageType, Participant
from .sanitize import clean_text, require_text

log = logging.getLogger("pollchat.presence")


def status_notice(name: str, action: str, at_ms: int) -> Message:
    return Message(
        sender=SYSTEM_SENDER,
        to=BROADCAST_TARGET,
        text=f"{name} {action}",
        type=MessageType.status,
        time=format_time(at_ms),
    )


class PresenceManager:
    def __init__(self, database: Database, clock: Optional[Clock] = None):
        self.database = database
        self.clock = clock or now_ms

    async def register(self, name: str) -> None:
        """Add a participant and announce the join.

        The name must be free; the primary key on ``Participant.name`` keeps
        two concurrent registrations from both landing.
        """
        name = require_text(name, "name")
        now = self.clock()

        async with self.database.session() as session:
            existing = await session.get(Participant, name)
            if existing is not None:
                raise ConflictError()

            session.add(Participant(name=name, last_status=now))
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError() from exc

        # Separate write: a failure here leaves the participant without a notice
        async with self.database.session() as session:
            session.add(status_notice(name, "joined", now))
            await session.commit()

        log.info("Participant %r joined", name)

    async def heartbeat(self, name: str) -> None:
        name = clean_text(name)
        async with self.database.session() as session:
            participant = await session.get(Participant, name)
            if participant is None:
                raise NotFoundError(f"Participant {name!r} is not connected")
            participant.last_status = self.clock()
            session.add(participant)
            await session.commit()

    async def list_participants(self) -> list[Participant]:
        async with self.database.session() as session:
            result = await session.exec(select(Participant))
            return list(result.all())

    async def evict_inactive(self, now: int, timeout_ms: int) -> list[str]:
        """Remove participants with ``last_status <= now - timeout_ms``.

        Returns the evicted names. Never raises: failures are logged and the
        next sweep tries again.
        """
        cutoff = now - timeout_ms
        try:
            async with self.database.session() as session:
                result = await session.exec(
                    select(Participant).where(Participant.last_status <= cutoff)
                )
                stale = list(result.all())
                if not stale:
                    return []

                # same cutoff: anyone who heartbeat since the select survives
                deleted = await session.execute(
                    delete(Participant)
                    .where(Participant.last_status <= cutoff)
                    .returning(Participant.name)
                    .execution_options(synchronize_session=False)
                )
                removed = set(deleted.scalars().all())
                names = [p.name for p in stale if p.name in removed]
                session.add_all([status_notice(name, "left", now) for name in names])
                await session.commit()
        except Exception:
            log.exception("Inactivity sweep failed")
            return []

        log.info("Evicted %d inactive participant(s): %s", len(names), ", ".join(names))
        return names
