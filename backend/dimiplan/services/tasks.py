"""Plans (tasks) inside planners, with encrypted contents."""

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from dimiplan.crypto.envelope import RecordEnvelope
from dimiplan.dates import parse_date
from dimiplan.db.models import Plan
from dimiplan.db.records import atomic, delete_records, insert_record, update_records
from dimiplan.errors import InvalidInputError, ResourceNotFoundError
from dimiplan.services.base import OwnedRecordService
from dimiplan.services.counters import CounterService
from dimiplan.services.planners import PlannerService

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 1

UPDATABLE_FIELDS = ("contents", "priority", "planner_id", "start_date", "due_date", "is_completed")


def _normalize_date(value: date | str | None) -> date | None:
    try:
        return parse_date(value)
    except ValueError:
        raise InvalidInputError(f"Invalid date: {value!r}") from None


def _completed_flag(value: bool | int | str | None) -> int | None:
    """Accepts True/False, 0/1 and the query-string forms "true"/"false"."""
    if value is None:
        return None
    if isinstance(value, str):
        return 1 if value.strip().lower() in ("true", "1") else 0
    return 1 if value else 0


class TaskService(OwnedRecordService):
    """Tasks reference their planner by id within the same owner."""

    model = Plan

    def __init__(self, envelope: RecordEnvelope, counters: CounterService, planners: PlannerService):
        super().__init__(envelope)
        self.counters = counters
        self.planners = planners

    async def create_task(
        self,
        db: AsyncSession,
        external_id: str,
        contents: str,
        planner_id: int,
        start_date: date | str | None = None,
        due_date: date | str | None = None,
        priority: int | None = DEFAULT_PRIORITY,
    ) -> dict:
        record = {
            "planner_id": planner_id,
            "contents": contents,
            "start_date": _normalize_date(start_date),
            "due_date": _normalize_date(due_date),
            "priority": priority or DEFAULT_PRIORITY,
            "is_completed": 0,
        }
        async with atomic(db):
            await self._require_planner(db, external_id, planner_id)
            owner_hash = self.envelope.owner_hash(external_id)
            record["id"] = await self.counters.next_id(db, owner_hash, "planId")
            row = self.envelope.wrap_for_insert(external_id, Plan, record)
            await db.execute(insert_record(Plan, row))

        return {**row, "owner": external_id, "contents": contents}

    async def get_task_by_id(self, db: AsyncSession, external_id: str, task_id: int) -> dict | None:
        return await self.fetch_record(db, external_id, Plan.id == task_id)

    async def get_tasks(
        self,
        db: AsyncSession,
        external_id: str,
        planner_id: int | None = None,
        is_completed: bool | int | str | None = None,
    ) -> list[dict]:
        """Tasks of one planner (or all), open ones first, then by priority."""
        criteria = []
        if planner_id is not None:
            await self._require_planner(db, external_id, planner_id)
            criteria.append(Plan.planner_id == planner_id)
        completed = _completed_flag(is_completed)
        if completed is not None:
            criteria.append(Plan.is_completed == completed)

        return await self.fetch_records(
            db,
            external_id,
            *criteria,
            order_by=(Plan.is_completed.asc(), Plan.priority.desc(), Plan.id.asc()),
        )

    async def update_task(
        self, db: AsyncSession, external_id: str, task_id: int, changes: Mapping[str, Any]
    ) -> dict:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise InvalidInputError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        values = dict(changes)
        for field in ("start_date", "due_date"):
            if field in values:
                values[field] = _normalize_date(values[field])
        if "is_completed" in values:
            values["is_completed"] = _completed_flag(values["is_completed"]) or 0

        async with atomic(db):
            await self._require_task(db, external_id, task_id)
            if "planner_id" in values:
                await self._require_planner(db, external_id, values["planner_id"])
            row = self.envelope.wrap_for_update(external_id, Plan, values)
            await self._update(db, external_id, task_id, row)
            return await self.get_task_by_id(db, external_id, task_id)

    async def complete_task(self, db: AsyncSession, external_id: str, task_id: int) -> dict:
        return await self.update_task(db, external_id, task_id, {"is_completed": 1})

    async def delete_task(self, db: AsyncSession, external_id: str, task_id: int) -> None:
        owner_hash = self.envelope.owner_hash(external_id)
        async with atomic(db):
            await self._require_task(db, external_id, task_id)
            await db.execute(delete_records(Plan).where(*self.identity_criteria(owner_hash, task_id)))
        logger.info("Task %d deleted for %s...", task_id, owner_hash[:8])

    async def _require_planner(self, db: AsyncSession, external_id: str, planner_id: int) -> None:
        if await self.planners.get_planner_by_id(db, external_id, planner_id) is None:
            raise ResourceNotFoundError("Planner not found")

    async def _require_task(self, db: AsyncSession, external_id: str, task_id: int) -> dict:
        task = await self.get_task_by_id(db, external_id, task_id)
        if task is None:
            raise ResourceNotFoundError("Task not found")
        return task

    async def _update(self, db: AsyncSession, external_id: str, task_id: int, row: dict) -> None:
        owner_hash = self.envelope.owner_hash(external_id)
        await db.execute(update_records(Plan, row).where(*self.identity_criteria(owner_hash, task_id)))
