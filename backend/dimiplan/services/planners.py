"""Planner storage: encrypted, per-owner unique names; deletes cascade to plans."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from dimiplan.crypto.envelope import RecordEnvelope
from dimiplan.db.models import Plan, Planner
from dimiplan.db.records import atomic, delete_records, insert_record, update_records
from dimiplan.errors import ResourceNotFoundError, UniqueViolationError
from dimiplan.services.base import OwnedRecordService
from dimiplan.services.counters import CounterService
from dimiplan.services.folders import ROOT_FOLDER_ID, FolderService

logger = logging.getLogger(__name__)


class PlannerService(OwnedRecordService):
    """
    Planners are unique by name within an owner.

    The uniqueness check compares ciphertexts, which works only because the
    encryption is deterministic per user. There is no unique index on the
    name column, so creates and renames hold the owner's counter row lock
    across the check and the write.
    """

    model = Planner

    def __init__(self, envelope: RecordEnvelope, counters: CounterService, folders: FolderService):
        super().__init__(envelope)
        self.counters = counters
        self.folders = folders

    async def create_planner(
        self,
        db: AsyncSession,
        external_id: str,
        name: str,
        is_daily: int | bool = 0,
        folder_id: int = ROOT_FOLDER_ID,
    ) -> dict:
        async with atomic(db):
            owner_hash = self.envelope.owner_hash(external_id)
            await self.counters.lock_owner(db, owner_hash)
            await self.folders.ensure_folder(db, external_id, folder_id)
            if await self.get_planner_by_name(db, external_id, name) is not None:
                raise UniqueViolationError("A planner with the same name already exists")

            planner_id = await self.counters.next_id(db, owner_hash, "plannerId")
            record = {
                "id": planner_id,
                "folder_id": folder_id,
                "is_daily": int(bool(is_daily)),
                "name": name,
            }
            row = self.envelope.wrap_for_insert(external_id, Planner, record)
            await db.execute(insert_record(Planner, row))

        return {**row, "owner": external_id, "name": name}

    async def get_planner_by_id(self, db: AsyncSession, external_id: str, planner_id: int) -> dict | None:
        return await self.fetch_record(db, external_id, Planner.id == planner_id)

    async def get_planner_by_name(self, db: AsyncSession, external_id: str, name: str) -> dict | None:
        candidates = self.name_candidates(external_id, "name", name)
        return await self.fetch_record(db, external_id, Planner.name.in_(candidates))

    async def get_planners(self, db: AsyncSession, external_id: str) -> list[dict]:
        return await self.fetch_records(
            db, external_id, order_by=(Planner.is_daily.asc(), Planner.id.asc())
        )

    async def get_planners_in_folder(self, db: AsyncSession, external_id: str, folder_id: int) -> list[dict]:
        return await self.fetch_records(
            db,
            external_id,
            Planner.folder_id == folder_id,
            order_by=(Planner.is_daily.asc(), Planner.id.asc()),
        )

    async def rename_planner(self, db: AsyncSession, external_id: str, planner_id: int, new_name: str) -> dict:
        async with atomic(db):
            await self.counters.lock_owner(db, self.envelope.owner_hash(external_id))
            planner = await self._require_planner(db, external_id, planner_id)
            existing = await self.get_planner_by_name(db, external_id, new_name)
            if existing is not None and existing["id"] != planner_id:
                raise UniqueViolationError("A planner with the same name already exists")

            changes = self.envelope.wrap_for_update(external_id, Planner, {"name": new_name})
            await self._update(db, external_id, planner_id, changes)

        return {**planner, "name": new_name, "updated_at": changes["updated_at"]}

    async def move_planner(self, db: AsyncSession, external_id: str, planner_id: int, folder_id: int) -> dict:
        async with atomic(db):
            planner = await self._require_planner(db, external_id, planner_id)
            await self.folders.ensure_folder(db, external_id, folder_id)
            changes = self.envelope.wrap_for_update(external_id, Planner, {"folder_id": folder_id})
            await self._update(db, external_id, planner_id, changes)

        return {**planner, "folder_id": folder_id, "updated_at": changes["updated_at"]}

    async def delete_planner(self, db: AsyncSession, external_id: str, planner_id: int) -> None:
        """Delete a planner and all of its plans in one transaction."""
        owner_hash = self.envelope.owner_hash(external_id)
        async with atomic(db):
            await self._require_planner(db, external_id, planner_id)
            await db.execute(
                delete_records(Plan).where(Plan.owner == owner_hash, Plan.planner_id == planner_id)
            )
            await db.execute(
                delete_records(Planner).where(*self.identity_criteria(owner_hash, planner_id))
            )

        logger.info("Planner %d deleted for %s...", planner_id, owner_hash[:8])

    async def _require_planner(self, db: AsyncSession, external_id: str, planner_id: int) -> dict:
        planner = await self.get_planner_by_id(db, external_id, planner_id)
        if planner is None:
            raise ResourceNotFoundError("Planner not found")
        return planner

    async def _update(self, db: AsyncSession, external_id: str, planner_id: int, changes: dict) -> None:
        owner_hash = self.envelope.owner_hash(external_id)
        await db.execute(
            update_records(Planner, changes).where(*self.identity_criteria(owner_hash, planner_id))
        )
