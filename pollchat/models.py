import enum
from typing import Optional

from sqlalchemy import BigInteger, Column
from sqlmodel import Field, SQLModel


class MessageType(str, enum.Enum):
    status = "status"
    message = "message"
    private_message = "private_message"


class Participant(SQLModel, table=True):
    # primary key doubles as the uniqueness guarantee for display names
    name: str = Field(primary_key=True)
    # epoch milliseconds
    last_status: int = Field(sa_column=Column(BigInteger, nullable=False, index=True))


class Message(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    sender: str = Field(index=True)
    to: str = Field(index=True)
    text: str
    type: MessageType
    time: str
