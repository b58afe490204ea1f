"""
One-shot rewrite of legacy plaintext tables into the encrypted layout.

Legacy rows carry the external identifier in their owner column and plaintext
in the payload columns. For each row the engine hashes the owner and encrypts
every payload column that does not already look like ciphertext. Rows whose
owner already has the 64-hex shape are left untouched, which makes a second
run a no-op.

Each table is processed in its own transaction. A row fails when its payload
cannot be encrypted or its UPDATE is rejected by the database (for example
the hashed owner already has a row written after deploy). A table with any
failed row is rolled back as a whole; a dry run rolls back every table.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dimiplan.crypto.codec import looks_encrypted
from dimiplan.crypto.envelope import RecordEnvelope, encrypted_fields, owner_field
from dimiplan.crypto.identifiers import looks_like_owner_hash
from dimiplan.dates import now_timestamp
from dimiplan.db.models import ChatMessage, ChatRoom, Folder, Plan, Planner, User, UserCounter
from dimiplan.db.records import column_map, fetch_all, select_records, update_records
from dimiplan.errors import EncryptionError

logger = logging.getLogger(__name__)

# users first, so an interrupted run leaves the account table consistent
MIGRATED_MODELS = (User, UserCounter, Folder, Planner, Plan, ChatRoom, ChatMessage)


@dataclass
class TableReport:
    table: str
    scanned: int = 0
    migrated: int = 0
    already_done: int = 0
    errored: int = 0
    committed: bool = False

    @property
    def ok(self) -> bool:
        return self.errored == 0


@dataclass
class MigrationReport:
    dry_run: bool
    tables: list[TableReport] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(table.ok for table in self.tables)

    @property
    def totals(self) -> dict[str, int]:
        return {
            "scanned": sum(t.scanned for t in self.tables),
            "migrated": sum(t.migrated for t in self.tables),
            "already_done": sum(t.already_done for t in self.tables),
            "errored": sum(t.errored for t in self.tables),
        }


class MigrationEngine:
    def __init__(self, envelope: RecordEnvelope, models: Iterable[type] = MIGRATED_MODELS):
        self.envelope = envelope
        self.models = tuple(models)

    async def run(self, session_factory: async_sessionmaker[AsyncSession], dry_run: bool = True) -> MigrationReport:
        """
        Migrate every table. Raises EncryptionError before touching anything
        if the cipher round-trip self-test fails.
        """
        self.envelope.codec.self_test()
        logger.info("Encryption self-test passed, starting migration (dry run: %s)", dry_run)

        report = MigrationReport(dry_run=dry_run)
        for model in self.models:
            async with session_factory() as session:
                table_report = await self.migrate_table(session, model, dry_run=dry_run)
            report.tables.append(table_report)
        return report

    async def migrate_table(self, db: AsyncSession, model: type, dry_run: bool = True) -> TableReport:
        report = TableReport(table=model.__tablename__)
        write = not dry_run
        try:
            rows = await fetch_all(db, select_records(model))
            for row in rows:
                report.scanned += 1
                await self._migrate_row(db, model, row, report, write)
                if write and not report.ok:
                    # the table rolls back; count the remaining rows without writing
                    await db.rollback()
                    write = False
        except BaseException:
            await db.rollback()
            raise

        if dry_run or not report.ok:
            await db.rollback()
            if not report.ok:
                logger.error(
                    "Table %s rolled back: %d of %d rows failed",
                    report.table,
                    report.errored,
                    report.scanned,
                )
        else:
            await db.commit()
            report.committed = True

        logger.info(
            "Table %s: scanned=%d migrated=%d already_done=%d errored=%d",
            report.table,
            report.scanned,
            report.migrated,
            report.already_done,
            report.errored,
        )
        return report

    async def _migrate_row(
        self, db: AsyncSession, model: type, row: dict, report: TableReport, write: bool
    ) -> None:
        owner_key = owner_field(model)
        external_id = row.get(owner_key)
        if not external_id:
            logger.warning("Row in %s has no %s", report.table, owner_key)
            report.errored += 1
            return
        if looks_like_owner_hash(external_id):
            report.already_done += 1
            return

        try:
            changes = self._legacy_changes(model, row, external_id)
        except EncryptionError:
            logger.exception("Could not encrypt a row in %s", report.table)
            report.errored += 1
            return

        if write:
            stmt = update_records(model, changes).where(*self._row_criteria(model, row))
            try:
                await db.execute(stmt)
            except SQLAlchemyError:
                logger.exception("Could not update a row in %s", report.table)
                report.errored += 1
                return
        report.migrated += 1

    def _legacy_changes(self, model: type, row: dict, external_id: str) -> dict:
        changes = {owner_field(model): self.envelope.owner_hash(external_id)}
        for name in encrypted_fields(model):
            value = row.get(name)
            if value is None or looks_encrypted(value):
                continue
            changes[name] = self.envelope.codec.encrypt_field(external_id, value)
        timestamp = now_timestamp()
        if "created_at" in row and row["created_at"] is None:
            changes["created_at"] = timestamp
        if "updated_at" in row:
            changes["updated_at"] = timestamp
        return changes

    @staticmethod
    def _row_criteria(model: type, row: dict) -> list:
        """Match a legacy row by its plaintext owner and, where present, its id."""
        columns = column_map(model)
        owner_key = owner_field(model)
        criteria = [columns[owner_key] == row[owner_key]]
        if owner_key != "id" and "id" in columns:
            criteria.append(columns["id"] == row["id"])
        return criteria
