"""Shared plumbing for services that store owner-scoped, envelope-encrypted rows."""

import logging
from collections.abc import Sequence
from typing import Any, ClassVar

from sqlalchemy import ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession

from dimiplan.crypto.codec import looks_encrypted
from dimiplan.crypto.envelope import NEEDS_UPGRADE, RecordEnvelope, owner_field
from dimiplan.db.records import fetch_all, fetch_one, select_records, update_records

logger = logging.getLogger(__name__)


class OwnedRecordService:
    """
    Base for the per-entity services.

    Every query is scoped by the caller's owner hash, so a record of another
    user can never be read or referenced. Rows flagged by the envelope as
    legacy plaintext (or encrypted under a retired key) are rewritten in the
    caller's session as they are read.
    """

    model: ClassVar[type]

    def __init__(self, envelope: RecordEnvelope):
        self.envelope = envelope

    def owner_column(self, model: type | None = None) -> ColumnElement:
        model = model or self.model
        return getattr(model, owner_field(model))

    def identity_criteria(self, owner_hash: str, record_id: Any, model: type | None = None) -> list:
        model = model or self.model
        if owner_field(model) == "id":
            # the owner hash is the primary key (users)
            return [self.owner_column(model) == owner_hash]
        return [self.owner_column(model) == owner_hash, model.id == record_id]

    async def fetch_record(
        self,
        db: AsyncSession,
        external_id: str,
        *criteria,
        model: type | None = None,
    ) -> dict | None:
        model = model or self.model
        owner_hash = self.envelope.owner_hash(external_id)
        stmt = select_records(model).where(self.owner_column(model) == owner_hash, *criteria)
        row = await fetch_one(db, stmt)
        return await self._unwrap(db, external_id, row, model)

    async def fetch_records(
        self,
        db: AsyncSession,
        external_id: str,
        *criteria,
        order_by: Sequence = (),
        model: type | None = None,
    ) -> list[dict]:
        model = model or self.model
        owner_hash = self.envelope.owner_hash(external_id)
        stmt = (
            select_records(model)
            .where(self.owner_column(model) == owner_hash, *criteria)
            .order_by(*order_by)
        )
        rows = await fetch_all(db, stmt)
        return [await self._unwrap(db, external_id, row, model) for row in rows]

    def name_candidates(self, external_id: str, field: str, plaintext: str, model: type | None = None) -> list[str]:
        """Stored values that mean `plaintext`: its ciphertexts plus the legacy plaintext."""
        model = model or self.model
        candidates = self.envelope.equality_candidates(external_id, model, field, plaintext)
        if not looks_encrypted(plaintext):
            candidates.append(plaintext)
        return candidates

    async def _unwrap(self, db: AsyncSession, external_id: str, row: dict | None, model: type) -> dict | None:
        record = self.envelope.unwrap_for_read(external_id, model, row)
        if record is not None and record[NEEDS_UPGRADE]:
            await self._upgrade(db, external_id, record, model)
        return record

    async def _upgrade(self, db: AsyncSession, external_id: str, record: dict, model: type) -> None:
        owner_hash = self.envelope.owner_hash(external_id)
        changes = self.envelope.upgrade_changes(external_id, model, record)
        await db.execute(
            update_records(model, changes).where(
                *self.identity_criteria(owner_hash, record.get("id"), model)
            )
        )
        logger.info(
            "Upgraded legacy %s row for %s...",
            model.__tablename__,
            owner_hash[:8],
        )
