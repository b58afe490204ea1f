"""Tests for planners (dimiplan.services.planners)."""

import asyncio

import pytest
from sqlalchemy import func, select

from dimiplan.db.models import Plan, Planner
from dimiplan.db.records import insert_record
from dimiplan.errors import ResourceNotFoundError, UniqueViolationError
from dimiplan.services.folders import ROOT_FOLDER_ID


async def count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


class TestCreatePlanner:
    async def test_create(self, db, services, user, envelope):
        planner = await services.planners.create_planner(db, user, "Math")

        assert planner["id"] == 1
        assert planner["folder_id"] == ROOT_FOLDER_ID
        assert planner["name"] == "Math"
        stored = (await db.execute(select(Planner.name))).scalar_one()
        assert stored == envelope.wrap_for_equality_search(user, Planner, "name", "Math")

    async def test_duplicate_name_is_rejected(self, db, services, user):
        await services.planners.create_planner(db, user, "Math")
        with pytest.raises(UniqueViolationError):
            await services.planners.create_planner(db, user, "Math")
        assert await count(db, Planner) == 1

    async def test_duplicate_across_folders_is_rejected(self, db, services, user):
        folder = await services.folders.create_folder(db, user, "School", ROOT_FOLDER_ID)
        await services.planners.create_planner(db, user, "Math")
        with pytest.raises(UniqueViolationError):
            await services.planners.create_planner(db, user, "Math", folder_id=folder["id"])

    async def test_same_name_for_other_user(self, db, services, user):
        await services.users.create_user(db, "u2")
        await services.planners.create_planner(db, user, "Math")
        other = await services.planners.create_planner(db, "u2", "Math")
        assert other["id"] == 1

    async def test_duplicate_of_legacy_plaintext_name(self, db, services, user, envelope):
        await db.execute(
            insert_record(Planner, {"owner": envelope.owner_hash(user), "id": 50, "folder_id": 0, "name": "Math"})
        )
        with pytest.raises(UniqueViolationError):
            await services.planners.create_planner(db, user, "Math")

    async def test_missing_folder(self, db, services, user):
        with pytest.raises(ResourceNotFoundError):
            await services.planners.create_planner(db, user, "Math", folder_id=12)

    async def test_concurrent_creates_of_one_name(self, db, session_factory, services, user):
        async def create() -> bool:
            async with session_factory() as session:
                try:
                    await services.planners.create_planner(session, user, "Math")
                except UniqueViolationError:
                    return False
                return True

        results = await asyncio.gather(*(create() for _ in range(5)))

        assert results.count(True) == 1
        assert await count(db, Planner) == 1


class TestReadPlanners:
    async def test_order_regular_before_daily(self, db, services, user):
        await services.planners.create_planner(db, user, "Daily", is_daily=True)
        await services.planners.create_planner(db, user, "Math")
        await services.planners.create_planner(db, user, "Art")

        names = [p["name"] for p in await services.planners.get_planners(db, user)]
        assert names == ["Math", "Art", "Daily"]

    async def test_in_folder(self, db, services, user):
        folder = await services.folders.create_folder(db, user, "School", ROOT_FOLDER_ID)
        await services.planners.create_planner(db, user, "Math", folder_id=folder["id"])
        await services.planners.create_planner(db, user, "Chores")

        inside = await services.planners.get_planners_in_folder(db, user, folder["id"])
        assert [p["name"] for p in inside] == ["Math"]

    async def test_get_by_id_scoped_to_owner(self, db, services, user):
        planner = await services.planners.create_planner(db, user, "Math")
        await services.users.create_user(db, "u2")

        assert (await services.planners.get_planner_by_id(db, user, planner["id"]))["name"] == "Math"
        assert await services.planners.get_planner_by_id(db, "u2", planner["id"]) is None


class TestUpdatePlanner:
    async def test_rename(self, db, services, user):
        planner = await services.planners.create_planner(db, user, "Math")
        renamed = await services.planners.rename_planner(db, user, planner["id"], "Algebra")
        assert renamed["name"] == "Algebra"
        assert await services.planners.get_planner_by_name(db, user, "Math") is None

    async def test_rename_conflict(self, db, services, user):
        await services.planners.create_planner(db, user, "Math")
        art = await services.planners.create_planner(db, user, "Art")
        with pytest.raises(UniqueViolationError):
            await services.planners.rename_planner(db, user, art["id"], "Math")

    async def test_move(self, db, services, user):
        folder = await services.folders.create_folder(db, user, "School", ROOT_FOLDER_ID)
        planner = await services.planners.create_planner(db, user, "Math")
        moved = await services.planners.move_planner(db, user, planner["id"], folder["id"])
        assert moved["folder_id"] == folder["id"]

    async def test_move_to_missing_folder(self, db, services, user):
        planner = await services.planners.create_planner(db, user, "Math")
        with pytest.raises(ResourceNotFoundError):
            await services.planners.move_planner(db, user, planner["id"], 9)


class TestDeletePlanner:
    async def test_cascades_to_plans(self, db, services, user):
        math = await services.planners.create_planner(db, user, "Math")
        art = await services.planners.create_planner(db, user, "Art")
        for contents in ("p.1", "p.2", "p.3"):
            await services.tasks.create_task(db, user, contents, math["id"])
        await services.tasks.create_task(db, user, "Sketch", art["id"])

        await services.planners.delete_planner(db, user, math["id"])

        assert await services.planners.get_planner_by_id(db, user, math["id"]) is None
        assert [t["contents"] for t in await services.tasks.get_tasks(db, user)] == ["Sketch"]

    async def test_missing_planner(self, db, services, user):
        with pytest.raises(ResourceNotFoundError):
            await services.planners.delete_planner(db, user, 3)

    async def test_failure_rolls_back_the_whole_cascade(self, db, session_factory, services, user, monkeypatch):
        planner = await services.planners.create_planner(db, user, "Math")
        for contents in ("p.1", "p.2", "p.3"):
            await services.tasks.create_task(db, user, contents, planner["id"])
        await db.commit()

        original_execute = db.execute

        async def failing_execute(statement, *args, **kwargs):
            if getattr(statement, "is_delete", False) and statement.table.name == "planner":
                raise RuntimeError("injected failure")
            return await original_execute(statement, *args, **kwargs)

        monkeypatch.setattr(db, "execute", failing_execute)
        with pytest.raises(RuntimeError):
            await services.planners.delete_planner(db, user, planner["id"])

        async with session_factory() as fresh:
            assert await count(fresh, Planner) == 1
            assert await count(fresh, Plan) == 3
