"""Per-user monotonic id allocation backed by the `userid` counter row."""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dimiplan.dates import now_timestamp
from dimiplan.db.models import UserCounter
from dimiplan.db.records import column_map, insert_record
from dimiplan.errors import OwnerNotInitializedError

logger = logging.getLogger(__name__)

# Counter kind (column name) -> model attribute
COUNTER_KINDS = {
    "plannerId": "planner_id",
    "planId": "plan_id",
    "roomId": "room_id",
    "chatId": "chat_id",
    "folderId": "folder_id",
}

INITIAL_ID = 1


def _counter_attribute(kind: str) -> str:
    try:
        return COUNTER_KINDS[kind]
    except KeyError:
        raise ValueError(f"Unknown counter kind: {kind}") from None


class CounterService:
    """
    Mints primary keys per (owner, kind).

    Must be called inside the transaction that inserts the row consuming the
    id. The increment is issued before the read, so the row lock taken by the
    UPDATE serializes concurrent allocations. Ids are never handed out twice;
    gaps are allowed.
    """

    async def initialize(self, db: AsyncSession, owner_hash: str) -> None:
        """Create the counter row with every kind at 1 (same transaction as the user row)."""
        timestamp = now_timestamp()
        row = {attribute: INITIAL_ID for attribute in COUNTER_KINDS.values()}
        row.update(owner=owner_hash, created_at=timestamp, updated_at=timestamp)
        await db.execute(insert_record(UserCounter, row))

    async def next_id(self, db: AsyncSession, owner_hash: str, kind: str, count: int = 1) -> int:
        """Reserve `count` consecutive ids and return the first one."""
        if count < 1:
            raise ValueError("count must be positive")
        columns = column_map(UserCounter)
        column = columns[_counter_attribute(kind)]

        result = await db.execute(
            update(UserCounter.__table__)
            .where(UserCounter.owner == owner_hash)
            .values({column: column + count, columns["updated_at"]: now_timestamp()})
        )
        if result.rowcount == 0:
            raise OwnerNotInitializedError(owner_hash)

        allocated = await db.execute(select(column).where(UserCounter.owner == owner_hash))
        current = allocated.scalar_one() - count
        logger.debug("Allocated %s %d (+%d) for %s...", kind, current, count, owner_hash[:8])
        return current

    async def lock_owner(self, db: AsyncSession, owner_hash: str) -> None:
        """
        Write-lock the owner's counter row until the transaction ends.

        Services take it before a check-then-insert on encrypted names, which
        have no unique index, so concurrent creates of one owner run one at a time.
        """
        result = await db.execute(
            update(UserCounter.__table__)
            .where(UserCounter.owner == owner_hash)
            .values({column_map(UserCounter)["updated_at"]: now_timestamp()})
        )
        if result.rowcount == 0:
            raise OwnerNotInitializedError(owner_hash)

    async def next_id_pair(self, db: AsyncSession, owner_hash: str, kind: str = "chatId") -> tuple[int, int]:
        first = await self.next_id(db, owner_hash, kind, count=2)
        return first, first + 1

    async def peek(self, db: AsyncSession, owner_hash: str, kind: str) -> int | None:
        """Next id that would be handed out, or None if the owner has no counter row."""
        column = column_map(UserCounter)[_counter_attribute(kind)]
        result = await db.execute(select(column).where(UserCounter.owner == owner_hash))
        return result.scalar_one_or_none()
