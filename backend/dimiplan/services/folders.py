"""Folder tree with encrypted names and recursive, single-transaction deletes."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dimiplan.crypto.envelope import RecordEnvelope
from dimiplan.db.models import Folder, Plan, Planner
from dimiplan.db.records import atomic, delete_records, insert_record, update_records
from dimiplan.errors import InvalidInputError, ResourceNotFoundError, UniqueViolationError
from dimiplan.services.base import OwnedRecordService
from dimiplan.services.counters import CounterService

logger = logging.getLogger(__name__)

ROOT_FOLDER_ID = 0
ROOT_PARENT_ID = -1
ROOT_FOLDER_NAME = "Root"

FOLDER_NAME_BLACKLIST = ("Root", "root", "new", "all")
MAX_FOLDER_NAME_LENGTH = 255


def is_valid_folder_name(name: str) -> bool:
    if not name or len(name) > MAX_FOLDER_NAME_LENGTH:
        return False
    if name in FOLDER_NAME_BLACKLIST:
        return False
    return not name.endswith(".pn")


class FolderService(OwnedRecordService):
    """
    Folders keyed by (owner, id); `parent_id` points at a folder of the same owner.

    Names are unique per parent. Like planners, creates and renames hold the
    owner's counter row lock across the name check and the write.
    """

    model = Folder

    def __init__(self, envelope: RecordEnvelope, counters: CounterService):
        super().__init__(envelope)
        self.counters = counters

    async def create_root_folder(self, db: AsyncSession, external_id: str) -> bool:
        """Create folder 0 if missing. Returns True when a row was inserted."""
        if await self.get_folder_by_id(db, external_id, ROOT_FOLDER_ID) is not None:
            return False
        row = self.envelope.wrap_for_insert(
            external_id,
            Folder,
            {"id": ROOT_FOLDER_ID, "parent_id": ROOT_PARENT_ID, "name": ROOT_FOLDER_NAME},
        )
        await db.execute(insert_record(Folder, row))
        return True

    async def ensure_folder(self, db: AsyncSession, external_id: str, folder_id: int) -> dict:
        """Return the folder, creating the root on demand; raise if any other id is missing."""
        if folder_id == ROOT_FOLDER_ID:
            await self.create_root_folder(db, external_id)
        folder = await self.get_folder_by_id(db, external_id, folder_id)
        if folder is None:
            raise ResourceNotFoundError("Folder not found")
        return folder

    async def create_folder(self, db: AsyncSession, external_id: str, name: str, parent_id: int) -> dict:
        if not is_valid_folder_name(name):
            raise InvalidInputError("Invalid folder name")

        async with atomic(db):
            owner_hash = self.envelope.owner_hash(external_id)
            await self.counters.lock_owner(db, owner_hash)
            try:
                await self.ensure_folder(db, external_id, parent_id)
            except ResourceNotFoundError as e:
                raise InvalidInputError("Parent folder does not exist") from e
            if await self.get_folder_by_name_and_parent(db, external_id, name, parent_id):
                raise UniqueViolationError("A folder with the same name already exists here")

            folder_id = await self.counters.next_id(db, owner_hash, "folderId")
            record = {"id": folder_id, "parent_id": parent_id, "name": name}
            row = self.envelope.wrap_for_insert(external_id, Folder, record)
            await db.execute(insert_record(Folder, row))

        return {**row, "owner": external_id, "name": name}

    async def get_folder_by_id(self, db: AsyncSession, external_id: str, folder_id: int) -> dict | None:
        return await self.fetch_record(db, external_id, Folder.id == folder_id)

    async def get_folder_by_name_and_parent(
        self, db: AsyncSession, external_id: str, name: str, parent_id: int
    ) -> dict | None:
        candidates = self.name_candidates(external_id, "name", name)
        return await self.fetch_record(
            db, external_id, Folder.parent_id == parent_id, Folder.name.in_(candidates)
        )

    async def list_subfolders(self, db: AsyncSession, external_id: str, parent_id: int) -> list[dict]:
        return await self.fetch_records(
            db, external_id, Folder.parent_id == parent_id, order_by=(Folder.id.asc(),)
        )

    async def rename_folder(self, db: AsyncSession, external_id: str, folder_id: int, new_name: str) -> dict:
        if folder_id == ROOT_FOLDER_ID:
            raise InvalidInputError("The root folder cannot be renamed")
        if not is_valid_folder_name(new_name):
            raise InvalidInputError("Invalid folder name")

        async with atomic(db):
            owner_hash = self.envelope.owner_hash(external_id)
            await self.counters.lock_owner(db, owner_hash)
            folder = await self.get_folder_by_id(db, external_id, folder_id)
            if folder is None:
                raise ResourceNotFoundError("Folder not found")
            existing = await self.get_folder_by_name_and_parent(
                db, external_id, new_name, folder["parent_id"]
            )
            if existing is not None and existing["id"] != folder_id:
                raise UniqueViolationError("A folder with the same name already exists here")

            changes = self.envelope.wrap_for_update(external_id, Folder, {"name": new_name})
            await db.execute(
                update_records(Folder, changes).where(*self.identity_criteria(owner_hash, folder_id))
            )

        return {**folder, "name": new_name, "updated_at": changes["updated_at"]}

    async def delete_folder(self, db: AsyncSession, external_id: str, folder_id: int) -> dict[str, int]:
        """
        Delete a folder, its subfolders, their planners and those planners' plans.

        Everything happens in one transaction: either the whole subtree goes or
        nothing does. Returns the number of deleted rows per table.
        """
        if folder_id == ROOT_FOLDER_ID:
            raise InvalidInputError("The root folder cannot be deleted")

        owner_hash = self.envelope.owner_hash(external_id)
        async with atomic(db):
            if await self.get_folder_by_id(db, external_id, folder_id) is None:
                raise ResourceNotFoundError("Folder not found")

            folder_ids = await self._collect_subtree(db, owner_hash, folder_id)
            planner_rows = await db.execute(
                select(Planner.id).where(Planner.owner == owner_hash, Planner.folder_id.in_(folder_ids))
            )
            planner_ids = list(planner_rows.scalars())

            plans_deleted = 0
            if planner_ids:
                result = await db.execute(
                    delete_records(Plan).where(Plan.owner == owner_hash, Plan.planner_id.in_(planner_ids))
                )
                plans_deleted = result.rowcount
            result = await db.execute(
                delete_records(Planner).where(Planner.owner == owner_hash, Planner.folder_id.in_(folder_ids))
            )
            planners_deleted = result.rowcount
            result = await db.execute(
                delete_records(Folder).where(Folder.owner == owner_hash, Folder.id.in_(folder_ids))
            )
            folders_deleted = result.rowcount

        logger.info(
            "Folder %d deleted for %s... (%d folders, %d planners, %d plans)",
            folder_id,
            owner_hash[:8],
            folders_deleted,
            planners_deleted,
            plans_deleted,
        )
        return {"folders": folders_deleted, "planners": planners_deleted, "plans": plans_deleted}

    async def _collect_subtree(self, db: AsyncSession, owner_hash: str, folder_id: int) -> list[int]:
        collected = [folder_id]
        frontier = [folder_id]
        while frontier:
            result = await db.execute(
                select(Folder.id).where(Folder.owner == owner_hash, Folder.parent_id.in_(frontier))
            )
            frontier = [child for child in result.scalars() if child not in collected]
            collected.extend(frontier)
        return collected
