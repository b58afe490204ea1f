"""Chat rooms and their messages."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from dimiplan.crypto.envelope import RecordEnvelope
from dimiplan.dates import now_timestamp
from dimiplan.db.models import ChatMessage, ChatRoom, ChatSender
from dimiplan.db.records import atomic, delete_records, insert_record, update_records
from dimiplan.errors import ResourceNotFoundError
from dimiplan.services.base import OwnedRecordService
from dimiplan.services.counters import CounterService

logger = logging.getLogger(__name__)


class ChatService(OwnedRecordService):
    model = ChatRoom

    def __init__(self, envelope: RecordEnvelope, counters: CounterService):
        super().__init__(envelope)
        self.counters = counters

    # -------------------------------------------------------------------------
    # Rooms
    # -------------------------------------------------------------------------

    async def create_chat_room(self, db: AsyncSession, external_id: str, name: str) -> dict:
        async with atomic(db):
            owner_hash = self.envelope.owner_hash(external_id)
            room_id = await self.counters.next_id(db, owner_hash, "roomId")
            row = self.envelope.wrap_for_insert(
                external_id, ChatRoom, {"id": room_id, "name": name, "is_processing": 0}
            )
            await db.execute(insert_record(ChatRoom, row))

        return {**row, "owner": external_id, "name": name}

    async def get_chat_rooms(self, db: AsyncSession, external_id: str) -> list[dict]:
        return await self.fetch_records(db, external_id, order_by=(ChatRoom.id.desc(),))

    async def get_chat_room(self, db: AsyncSession, external_id: str, room_id: int) -> dict | None:
        return await self.fetch_record(db, external_id, ChatRoom.id == room_id)

    async def rename_chat_room(self, db: AsyncSession, external_id: str, room_id: int, new_name: str) -> dict:
        async with atomic(db):
            room = await self._require_room(db, external_id, room_id)
            changes = self.envelope.wrap_for_update(external_id, ChatRoom, {"name": new_name})
            await self._update_room(db, external_id, room_id, changes)

        return {**room, "name": new_name, "updated_at": changes["updated_at"]}

    async def set_processing(self, db: AsyncSession, external_id: str, room_id: int, processing: bool) -> None:
        """Flag a room while an AI reply is being generated for it."""
        async with atomic(db):
            await self._require_room(db, external_id, room_id)
            changes = self.envelope.wrap_for_update(
                external_id, ChatRoom, {"is_processing": 1 if processing else 0}
            )
            await self._update_room(db, external_id, room_id, changes)

    async def delete_chat_room(self, db: AsyncSession, external_id: str, room_id: int) -> None:
        """Delete a room together with its messages."""
        owner_hash = self.envelope.owner_hash(external_id)
        async with atomic(db):
            await self._require_room(db, external_id, room_id)
            await db.execute(
                delete_records(ChatMessage).where(
                    ChatMessage.owner == owner_hash, ChatMessage.room_id == room_id
                )
            )
            await db.execute(
                delete_records(ChatRoom).where(*self.identity_criteria(owner_hash, room_id))
            )

        logger.info("Chat room %d deleted for %s...", room_id, owner_hash[:8])

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    async def add_chat_messages(
        self,
        db: AsyncSession,
        external_id: str,
        room_id: int,
        user_message: str,
        ai_message: str,
    ) -> list[dict]:
        """
        Store a user message and the assistant's reply as one exchange.

        Both rows share a timestamp and get consecutive ids from a single
        counter increment, so the reply always sorts directly after its prompt.
        """
        owner_hash = self.envelope.owner_hash(external_id)
        timestamp = now_timestamp()
        messages = [
            (user_message, ChatSender.USER),
            (ai_message, ChatSender.AI),
        ]

        async with atomic(db):
            await self._require_room(db, external_id, room_id)
            ids = await self.counters.next_id_pair(db, owner_hash, "chatId")
            records = []
            for message_id, (message, sender) in zip(ids, messages):
                row = self.envelope.wrap_for_insert(
                    external_id,
                    ChatMessage,
                    {
                        "id": message_id,
                        "room_id": room_id,
                        "message": message,
                        "sender": sender.value,
                        "created_at": timestamp,
                        "updated_at": timestamp,
                    },
                )
                await db.execute(insert_record(ChatMessage, row))
                records.append({**row, "owner": external_id, "message": message})

        return records

    async def get_chat_messages(self, db: AsyncSession, external_id: str, room_id: int) -> list[dict]:
        return await self.fetch_records(
            db,
            external_id,
            ChatMessage.room_id == room_id,
            order_by=(ChatMessage.id.asc(),),
            model=ChatMessage,
        )

    async def _require_room(self, db: AsyncSession, external_id: str, room_id: int) -> dict:
        room = await self.get_chat_room(db, external_id, room_id)
        if room is None:
            raise ResourceNotFoundError("Chat room not found")
        return room

    async def _update_room(self, db: AsyncSession, external_id: str, room_id: int, changes: dict) -> None:
        owner_hash = self.envelope.owner_hash(external_id)
        await db.execute(
            update_records(ChatRoom, changes).where(*self.identity_criteria(owner_hash, room_id))
        )
