"""HTTP surface tests (dimiplan.main)."""

import pytest
from sqlalchemy import delete

from dimiplan.api.deps import create_access_token, decode_access_token
from dimiplan.db.models import UserCounter


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestAuth:
    @pytest.fixture
    def google_token(self, monkeypatch):
        claims = {
            "iss": "https://accounts.google.com",
            "sub": "110248495921238986420",
            "email": "kim@example.com",
            "email_verified": True,
            "name": "Kim",
            "picture": "https://example.com/kim.png",
        }

        def verify(token, request, audience):
            if token != "valid-token":
                raise ValueError("Token verification failed")
            assert audience == "test-client-id"
            return claims

        monkeypatch.setattr("dimiplan.api.routes.auth.google_id_token.verify_oauth2_token", verify)
        return claims

    async def test_login_registers_user(self, client, google_token):
        response = await client.post("/auth/google", json={"id_token": "valid-token"})

        assert response.status_code == 200
        body = response.json()
        assert body["registered"] is True
        assert decode_access_token(body["access_token"]) == google_token["sub"]
        assert "access_token" in response.cookies

        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["id"] == google_token["sub"]
        assert me.json()["email"] == "kim@example.com"

    async def test_second_login_keeps_profile(self, client, google_token):
        await client.post("/auth/google", json={"id_token": "valid-token"})
        google_token["name"] = "Renamed"
        response = await client.post("/auth/google", json={"id_token": "valid-token"})

        token = response.json()["access_token"]
        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["name"] == "Kim"

    async def test_unverified_email_is_dropped(self, client, google_token):
        google_token["email_verified"] = False
        token = (await client.post("/auth/google", json={"id_token": "valid-token"})).json()["access_token"]
        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["email"] is None

    async def test_invalid_token(self, client, google_token):
        response = await client.post("/auth/google", json={"id_token": "forged"})
        assert response.status_code == 401

    async def test_wrong_issuer(self, client, google_token):
        google_token["iss"] = "https://evil.example.com"
        response = await client.post("/auth/google", json={"id_token": "valid-token"})
        assert response.status_code == 401

    async def test_me_requires_auth(self, client):
        assert (await client.get("/auth/me")).status_code == 401

    async def test_token_for_unknown_user(self, client):
        headers = {"Authorization": f"Bearer {create_access_token('ghost')}"}
        assert (await client.get("/auth/me", headers=headers)).status_code == 401

    async def test_garbage_token(self, client):
        assert (await client.get("/auth/me", headers={"Authorization": "Bearer nope"})).status_code == 401

    async def test_update_me(self, client, auth_headers):
        response = await client.patch("/auth/me", json={"grade": 2, "class": 3}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["grade"] == 2
        assert response.json()["class"] == 3

    async def test_logout(self, client):
        response = await client.post("/auth/logout")
        assert response.status_code == 204


class TestFolders:
    async def test_crud(self, client, auth_headers):
        created = await client.post("/folders/", json={"name": "School"}, headers=auth_headers)
        assert created.status_code == 201
        folder_id = created.json()["id"]

        listing = await client.get("/folders/", headers=auth_headers)
        assert [f["name"] for f in listing.json()] == ["School"]

        renamed = await client.patch(f"/folders/{folder_id}", json={"name": "Work"}, headers=auth_headers)
        assert renamed.json()["name"] == "Work"

        deleted = await client.delete(f"/folders/{folder_id}", headers=auth_headers)
        assert deleted.json() == {"folders": 1, "planners": 0, "plans": 0}
        assert (await client.get(f"/folders/{folder_id}", headers=auth_headers)).status_code == 404

    async def test_reserved_name(self, client, auth_headers):
        response = await client.post("/folders/", json={"name": "root"}, headers=auth_headers)
        assert response.status_code == 400

    async def test_missing_parent(self, client, auth_headers):
        response = await client.post("/folders/", json={"name": "School", "parent_id": 4}, headers=auth_headers)
        assert response.status_code == 400

    async def test_folder_planners(self, client, auth_headers):
        folder = (await client.post("/folders/", json={"name": "School"}, headers=auth_headers)).json()
        await client.post("/planners/", json={"name": "Math", "folder_id": folder["id"]}, headers=auth_headers)

        response = await client.get(f"/folders/{folder['id']}/planners", headers=auth_headers)
        assert [p["name"] for p in response.json()] == ["Math"]


class TestPlanners:
    async def test_duplicate_name_conflict(self, client, auth_headers):
        first = await client.post("/planners/", json={"name": "Math"}, headers=auth_headers)
        second = await client.post("/planners/", json={"name": "Math"}, headers=auth_headers)

        assert first.status_code == 201
        assert first.json()["is_daily"] is False
        assert second.status_code == 409

    async def test_rename_and_move(self, client, auth_headers):
        folder = (await client.post("/folders/", json={"name": "School"}, headers=auth_headers)).json()
        planner = (await client.post("/planners/", json={"name": "Math"}, headers=auth_headers)).json()

        response = await client.patch(
            f"/planners/{planner['id']}",
            json={"name": "Algebra", "folder_id": folder["id"]},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Algebra"
        assert response.json()["folder_id"] == folder["id"]

    async def test_missing_planner(self, client, auth_headers):
        assert (await client.get("/planners/3", headers=auth_headers)).status_code == 404
        assert (await client.delete("/planners/3", headers=auth_headers)).status_code == 404

    async def test_unprovisioned_user(self, client, auth_headers, db, envelope, user):
        await db.execute(delete(UserCounter).where(UserCounter.owner == envelope.owner_hash(user)))
        await db.commit()

        response = await client.post("/planners/", json={"name": "Math"}, headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "User not provisioned"


class TestTasks:
    async def test_flow(self, client, auth_headers):
        planner = (await client.post("/planners/", json={"name": "Math"}, headers=auth_headers)).json()
        created = await client.post(
            "/tasks/",
            json={"contents": "p.12", "planner_id": planner["id"], "due_date": "2024-03-04", "priority": 2},
            headers=auth_headers,
        )
        assert created.status_code == 201
        task = created.json()
        assert task["due_date"] == "2024-03-04"
        assert task["is_completed"] is False

        completed = await client.post(f"/tasks/{task['id']}/complete", headers=auth_headers)
        assert completed.json()["is_completed"] is True

        open_tasks = await client.get(
            "/tasks/", params={"planner_id": planner["id"], "is_completed": "false"}, headers=auth_headers
        )
        assert open_tasks.json() == []

        updated = await client.patch(f"/tasks/{task['id']}", json={"contents": "p.13"}, headers=auth_headers)
        assert updated.json()["contents"] == "p.13"

        assert (await client.delete(f"/tasks/{task['id']}", headers=auth_headers)).status_code == 204
        assert (await client.get(f"/tasks/{task['id']}", headers=auth_headers)).status_code == 404

    async def test_missing_planner(self, client, auth_headers):
        response = await client.post("/tasks/", json={"contents": "x", "planner_id": 9}, headers=auth_headers)
        assert response.status_code == 404


class TestChat:
    async def test_flow(self, client, auth_headers):
        room = (await client.post("/chat/rooms/", json={"name": "Exam prep"}, headers=auth_headers)).json()
        assert room["is_processing"] is False

        added = await client.post(
            f"/chat/rooms/{room['id']}/messages",
            json={"user_message": "hi", "ai_message": "hello!"},
            headers=auth_headers,
        )
        assert added.status_code == 201
        assert [m["sender"] for m in added.json()] == ["user", "ai"]

        history = await client.get(f"/chat/rooms/{room['id']}/messages", headers=auth_headers)
        assert [m["message"] for m in history.json()] == ["hi", "hello!"]

        renamed = await client.patch(f"/chat/rooms/{room['id']}", json={"name": "Finals"}, headers=auth_headers)
        assert renamed.json()["name"] == "Finals"

        assert (await client.delete(f"/chat/rooms/{room['id']}", headers=auth_headers)).status_code == 204
        assert (await client.get(f"/chat/rooms/{room['id']}/messages", headers=auth_headers)).status_code == 404

    async def test_rooms_are_per_user(self, client, auth_headers, db, services):
        await client.post("/chat/rooms/", json={"name": "Mine"}, headers=auth_headers)
        await services.users.create_user(db, "u2")
        await db.commit()

        other_headers = {"Authorization": f"Bearer {create_access_token('u2')}"}
        assert (await client.get("/chat/rooms/", headers=other_headers)).json() == []
