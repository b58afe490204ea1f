"""Tests for user accounts (dimiplan.services.users)."""

import pytest
from sqlalchemy import select

from dimiplan.crypto.codec import looks_encrypted
from dimiplan.crypto.envelope import NEEDS_UPGRADE
from dimiplan.db.models import Folder, User, UserCounter
from dimiplan.db.records import fetch_one, insert_record, select_records
from dimiplan.errors import ResourceNotFoundError
from dimiplan.services.folders import ROOT_FOLDER_ID, ROOT_PARENT_ID


async def raw_user(db, owner_hash: str) -> dict | None:
    return await fetch_one(db, select_records(User).where(User.id == owner_hash))


class TestCreateUser:
    async def test_creates_user_counter_row_and_root_folder(self, db, services, envelope):
        created = await services.users.create_user(db, "u1", {"name": "Kim", "grade": 2})
        owner_hash = envelope.owner_hash("u1")

        assert created["id"] == "u1"
        assert created["name"] == "Kim"
        assert (await db.execute(select(UserCounter.owner))).scalars().all() == [owner_hash]

        root = await services.folders.get_folder_by_id(db, "u1", ROOT_FOLDER_ID)
        assert root["parent_id"] == ROOT_PARENT_ID
        assert root["name"] == "Root"

    async def test_is_idempotent(self, db, services):
        await services.users.create_user(db, "u1", {"name": "Kim"})
        again = await services.users.create_user(db, "u1", {"name": "Someone else"})

        assert again["name"] == "Kim"
        assert len((await db.execute(select(User.id))).all()) == 1
        assert len((await db.execute(select(Folder.id))).all()) == 1

    async def test_stores_only_hash_and_ciphertext(self, db, services, envelope):
        await services.users.create_user(db, "u1", {"name": "Kim", "email": "kim@example.com"})
        row = await raw_user(db, envelope.owner_hash("u1"))

        assert row["id"] == "ab1583476e7dcdff916ee83020df9c51effb04ac7b1068d68bdf0a8377370328"
        assert looks_encrypted(row["name"])
        assert looks_encrypted(row["email"])
        assert row["profile_image"] is None

    async def test_ignores_unknown_profile_keys(self, db, services):
        created = await services.users.create_user(db, "u1", {"name": "Kim", "admin": True})
        assert "admin" not in created


class TestReadUser:
    async def test_user_exists(self, db, services, user):
        assert await services.users.user_exists(db, user)
        assert not await services.users.user_exists(db, "u2")

    async def test_get_user(self, db, services, user):
        profile = await services.users.get_user(db, user)
        assert profile["id"] == "u1"
        assert profile["email"] == "kim@example.com"
        assert profile[NEEDS_UPGRADE] is False

    async def test_get_missing_user(self, db, services):
        assert await services.users.get_user(db, "u2") is None

    async def test_is_registered(self, db, services, user):
        assert await services.users.is_registered(db, user)
        await services.users.create_user(db, "u2")
        assert not await services.users.is_registered(db, "u2")
        assert not await services.users.is_registered(db, "u3")

    async def test_legacy_plaintext_is_upgraded_on_read(self, db, services, envelope):
        owner_hash = envelope.owner_hash("u1")
        await db.execute(insert_record(User, {"id": owner_hash, "name": "Kim", "email": "kim@example.com"}))
        await db.commit()

        profile = await services.users.get_user(db, "u1")
        await db.commit()

        assert profile["name"] == "Kim"
        assert profile[NEEDS_UPGRADE] is True
        row = await raw_user(db, owner_hash)
        assert looks_encrypted(row["name"])
        assert looks_encrypted(row["email"])
        assert (await services.users.get_user(db, "u1"))[NEEDS_UPGRADE] is False


class TestUpdateUser:
    async def test_update_profile(self, db, services, user, envelope):
        updated = await services.users.update_user(db, user, {"name": "Lee", "grade": 3, "class_": 4})

        assert updated["name"] == "Lee"
        assert updated["grade"] == 3
        assert updated["class_"] == 4
        row = await raw_user(db, envelope.owner_hash(user))
        assert row["name"] == envelope.wrap_for_equality_search(user, User, "name", "Lee")

    async def test_update_missing_user(self, db, services):
        with pytest.raises(ResourceNotFoundError):
            await services.users.update_user(db, "nobody", {"name": "x"})
