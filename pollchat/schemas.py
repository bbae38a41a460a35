from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Message, MessageType, Participant
from .sanitize import clean_text

UserMessageType = Literal["message", "private_message"]


def _non_empty(value: str) -> str:
    cleaned = clean_text(value)
    if not cleaned:
        raise ValueError("must not be empty")
    return cleaned


class ParticipantIn(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def clean_name(cls, value: str) -> str:
        return _non_empty(value)


class MessageIn(BaseModel):
    to: str
    text: str
    type: UserMessageType

    @field_validator("to", "text")
    @classmethod
    def clean_fields(cls, value: str) -> str:
        return _non_empty(value)


class ParticipantRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    last_status: int = Field(alias="lastStatus")

    @classmethod
    def from_record(cls, participant: Participant) -> "ParticipantRead":
        return cls(name=participant.name, last_status=participant.last_status)


class MessageRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    sender: str = Field(alias="from")
    to: str
    text: str
    type: MessageType
    time: str

    @classmethod
    def from_record(cls, message: Message) -> "MessageRead":
        return cls(
            id=message.id,
            sender=message.sender,
            to=message.to,
            text=message.text,
            type=message.type,
            time=message.time,
        )
