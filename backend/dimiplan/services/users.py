"""User accounts keyed by the opaque row key of the OAuth identifier."""

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dimiplan.crypto.envelope import RecordEnvelope
from dimiplan.db.models import User
from dimiplan.db.records import atomic, insert_record, update_records
from dimiplan.errors import ResourceNotFoundError
from dimiplan.services.base import OwnedRecordService
from dimiplan.services.counters import CounterService
from dimiplan.services.folders import FolderService

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "email", "profile_image", "grade", "class_")


class UserService(OwnedRecordService):
    model = User

    def __init__(self, envelope: RecordEnvelope, counters: CounterService, folders: FolderService):
        super().__init__(envelope)
        self.counters = counters
        self.folders = folders

    async def user_exists(self, db: AsyncSession, external_id: str) -> bool:
        owner_hash = self.envelope.owner_hash(external_id)
        result = await db.execute(select(func.count()).select_from(User).where(User.id == owner_hash))
        return result.scalar_one() > 0

    async def create_user(
        self, db: AsyncSession, external_id: str, profile: Mapping[str, Any] | None = None
    ) -> dict:
        """
        Register a user on first login.

        Inserts the user row, the counter row and the root folder in one
        transaction. Calling it again for an existing user changes nothing and
        returns the stored profile.
        """
        profile = {key: value for key, value in (profile or {}).items() if key in PROFILE_FIELDS}

        async with atomic(db):
            if await self.user_exists(db, external_id):
                return await self.get_user(db, external_id)

            owner_hash = self.envelope.owner_hash(external_id)
            row = self.envelope.wrap_for_insert(external_id, User, profile)
            await db.execute(insert_record(User, row))
            await self.counters.initialize(db, owner_hash)
            await self.folders.create_root_folder(db, external_id)

        logger.info("User created: %s...", owner_hash[:8])
        return {**row, **profile, "id": external_id}

    async def get_user(self, db: AsyncSession, external_id: str) -> dict | None:
        """The user's profile, decrypted; legacy plaintext fields are re-encrypted in place."""
        return await self.fetch_record(db, external_id)

    async def update_user(self, db: AsyncSession, external_id: str, changes: Mapping[str, Any]) -> dict:
        values = {key: value for key, value in changes.items() if key in PROFILE_FIELDS}
        owner_hash = self.envelope.owner_hash(external_id)

        async with atomic(db):
            if not await self.user_exists(db, external_id):
                raise ResourceNotFoundError("User not found")
            row = self.envelope.wrap_for_update(external_id, User, values)
            await db.execute(update_records(User, row).where(User.id == owner_hash))
            return await self.get_user(db, external_id)

    async def is_registered(self, db: AsyncSession, external_id: str) -> bool:
        """A user counts as registered once they have a name on file."""
        user = await self.get_user(db, external_id)
        return user is not None and user.get("name") is not None
