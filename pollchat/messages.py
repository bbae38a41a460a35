import logging
from typing import Optional, Union

from sqlmodel import select

from .clock import Clock, format_time, now_ms
from .config import BROADCAST_TARGET
from .database import Database
from .errors import ForbiddenError, NotFoundError, ValidationError
from .models import Message, MessageType, Participant
from .sanitize import clean_text, require_text

log = logging.getLogger("pollchat.messages")

USER_MESSAGE_TYPES = frozenset({MessageType.message, MessageType.private_message})


def parse_limit(limit: Union[int, str, None]) -> Optional[int]:
    """Return ``limit`` as a non-negative int, or None when it is unusable."""
    if isinstance(limit, bool):
        return None
    if isinstance(limit, str):
        try:
            limit = int(limit)
        except ValueError:
            return None
    if isinstance(limit, int):
        return limit if limit >= 0 else None
    return None


def _user_type(value) -> MessageType:
    try:
        kind = MessageType(value)
    except ValueError:
        raise ValidationError('"type" must be one of message, private_message') from None
    if kind not in USER_MESSAGE_TYPES:
        raise ValidationError('"type" must be one of message, private_message')
    return kind


class MessageRouter:
    def __init__(self, database: Database, clock: Optional[Clock] = None):
        self.database = database
        self.clock = clock or now_ms

    async def send(self, sender: str, to: str, text: str, type: str) -> Message:
        sender = clean_text(sender)
        to = require_text(to, "to")
        text = require_text(text, "text")
        kind = _user_type(type)

        async with self.database.session() as session:
            if not sender or await session.get(Participant, sender) is None:
                raise NotFoundError("User is not logged in")

            message = Message(
                sender=sender, to=to, text=text, type=kind, time=format_time(self.clock())
            )
            session.add(message)
            await session.commit()

        log.debug("%s -> %s (%s)", sender, to, kind.value)
        return message

    async def list_for(self, user: str, limit: Union[int, str, None] = None) -> list[Message]:
        """Messages visible to ``user``: addressed to them, sent by them, or broadcast.

        The three sets overlap (a broadcast sent by ``user`` matches two of
        them), so they are merged by id rather than by value.
        """
        user = clean_text(user)
        clauses = (
            Message.to == user,
            Message.sender == user,
            Message.to == BROADCAST_TARGET,
        )
        merged: dict[int, Message] = {}
        async with self.database.session() as session:
            for clause in clauses:
                result = await session.exec(select(Message).where(clause).order_by(Message.id))
                for message in result.all():
                    merged.setdefault(message.id, message)

        visible = [merged[key] for key in sorted(merged)]

        count = parse_limit(limit)
        if count is None:
            return visible
        if count == 0:
            return []
        return visible[-count:]

    async def _owned(self, session, message_id: int, requester: str) -> Message:
        message = await session.get(Message, message_id)
        if message is None:
            raise NotFoundError(f"Message {message_id} does not exist")
        if message.type == MessageType.status or message.sender != requester:
            raise ForbiddenError()
        return message

    async def edit(
        self, message_id: int, requester: str, to: str, text: str, type: str
    ) -> Message:
        requester = clean_text(requester)
        to = require_text(to, "to")
        text = require_text(text, "text")
        kind = _user_type(type)

        async with self.database.session() as session:
            message = await self._owned(session, message_id, requester)
            message.sender = requester
            message.to = to
            message.text = text
            message.type = kind
            message.time = format_time(self.clock())
            session.add(message)
            await session.commit()

        log.debug("Message %s edited by %s", message_id, requester)
        return message

    async def delete(self, message_id: int, requester: str) -> None:
        requester = clean_text(requester)
        async with self.database.session() as session:
            message = await self._owned(session, message_id, requester)
            await session.delete(message)
            await session.commit()

        log.debug("Message %s deleted by %s", message_id, requester)
