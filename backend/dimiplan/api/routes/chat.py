"""
Chat room routes.

Replies are produced elsewhere; these endpoints store and list the
encrypted conversation history.
"""

from fastapi import APIRouter, status

from dimiplan.api.deps import AppServices, CurrentUserId, DbSession, found_or_404
from dimiplan.schemas.chat import (
    ChatExchangeCreate,
    ChatMessageRead,
    ChatRoomCreate,
    ChatRoomRead,
    ChatRoomRename,
)

router = APIRouter(prefix="/chat/rooms", tags=["chat"])


@router.get("/", response_model=list[ChatRoomRead])
async def list_rooms(
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> list[ChatRoomRead]:
    """List chat rooms, newest first."""
    rooms = await services.chat.get_chat_rooms(db, external_id)
    return [ChatRoomRead.model_validate(r) for r in rooms]


@router.post("/", response_model=ChatRoomRead, status_code=status.HTTP_201_CREATED)
async def create_room(
    data: ChatRoomCreate,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> ChatRoomRead:
    room = await services.chat.create_chat_room(db, external_id, data.name)
    return ChatRoomRead.model_validate(room)


@router.get("/{room_id}", response_model=ChatRoomRead)
async def get_room(
    room_id: int,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> ChatRoomRead:
    room = await services.chat.get_chat_room(db, external_id, room_id)
    return ChatRoomRead.model_validate(found_or_404(room, "Chat room not found"))


@router.patch("/{room_id}", response_model=ChatRoomRead)
async def rename_room(
    room_id: int,
    data: ChatRoomRename,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> ChatRoomRead:
    room = await services.chat.rename_chat_room(db, external_id, room_id, data.name)
    return ChatRoomRead.model_validate(room)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(
    room_id: int,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> None:
    """Delete a room and its messages."""
    await services.chat.delete_chat_room(db, external_id, room_id)


@router.get("/{room_id}/messages", response_model=list[ChatMessageRead])
async def list_messages(
    room_id: int,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> list[ChatMessageRead]:
    found_or_404(await services.chat.get_chat_room(db, external_id, room_id), "Chat room not found")
    messages = await services.chat.get_chat_messages(db, external_id, room_id)
    return [ChatMessageRead.model_validate(m) for m in messages]


@router.post(
    "/{room_id}/messages",
    response_model=list[ChatMessageRead],
    status_code=status.HTTP_201_CREATED,
)
async def add_messages(
    room_id: int,
    data: ChatExchangeCreate,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> list[ChatMessageRead]:
    """Store a user message and the assistant reply as one exchange."""
    messages = await services.chat.add_chat_messages(
        db, external_id, room_id, data.user_message, data.ai_message
    )
    return [ChatMessageRead.model_validate(m) for m in messages]
