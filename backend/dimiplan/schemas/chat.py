"""Chat room and message schemas."""

from pydantic import Field, field_serializer

from dimiplan.db.models import ChatSender
from dimiplan.schemas.base import BaseSchema, IDMixin, TimestampMixin


class ChatRoomCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)


class ChatRoomRename(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)


class ChatRoomRead(IDMixin, TimestampMixin, BaseSchema):
    name: str | None
    is_processing: int

    @field_serializer("is_processing")
    def serialize_is_processing(self, value: int) -> bool:
        return bool(value)


class ChatExchangeCreate(BaseSchema):
    """A user message and the assistant reply, stored as one pair."""

    user_message: str = Field(..., min_length=1)
    ai_message: str


class ChatMessageRead(IDMixin, TimestampMixin, BaseSchema):
    room_id: int
    message: str | None
    sender: ChatSender
