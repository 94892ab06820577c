"""Remote store HTTP contract."""

from fastapi.testclient import TestClient

from smartlist.main import app


def _create(client, identifier="google-1", **extra):
    resp = client.post("/api/users", json={"sessionIdentifier": identifier, **extra})
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_create_user_is_idempotent_per_identifier():
    client = TestClient(app)

    first = _create(client, name="Ada", email="ada@example.com")
    second = _create(client)

    assert first["exists"] is False
    assert second["exists"] is True
    assert first["userId"] == second["userId"]
    assert (first["xp"], first["level"], first["tasksCompleted"]) == (0, 1, 0)


def test_create_user_accepts_legacy_identifier_field():
    client = TestClient(app)

    created = client.post("/api/users", json={"googleId": "legacy-1"}).json()
    again = _create(client, "legacy-1")

    assert again["userId"] == created["userId"]


def test_create_user_requires_identifier():
    client = TestClient(app)

    resp = client.post("/api/users", json={"name": "nobody"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["request_id"] == resp.headers["x-request-id"]


def test_get_unknown_user_is_404():
    client = TestClient(app)

    resp = client.get("/api/users/does-not-exist")

    assert resp.status_code == 404
    assert resp.json()["code"] == "USER_NOT_FOUND"


def test_new_user_has_no_task_collections():
    client = TestClient(app)
    user_id = _create(client)["userId"]

    record = client.get(f"/api/users/{user_id}").json()

    assert record["userId"] == user_id
    assert record["tasks"] is None
    assert record["completedTasks"] is None


def test_update_replaces_snapshot_and_derives_level():
    client = TestClient(app)
    user_id = _create(client)["userId"]
    tasks = [{"id": "a", "name": "a", "createdAt": "2024-01-01T00:00:00Z"}]

    resp = client.put(
        f"/api/users/{user_id}",
        json={"xp": 1500, "tasksCompleted": 4, "tasks": tasks, "completedTasks": []},
    )

    assert resp.status_code == 200
    assert resp.json()["message"] == "User updated successfully"
    record = client.get(f"/api/users/{user_id}").json()
    assert record["xp"] == 1500
    assert record["level"] == 3
    assert record["tasksCompleted"] == 4
    assert record["tasks"] == tasks
    assert record["completedTasks"] == []


def test_update_without_collections_keeps_stored_tasks():
    client = TestClient(app)
    user_id = _create(client)["userId"]
    tasks = [{"id": "a", "name": "a", "createdAt": "2024-01-01T00:00:00Z"}]
    client.put(f"/api/users/{user_id}", json={"xp": 10, "tasksCompleted": 0, "tasks": tasks})

    client.put(f"/api/users/{user_id}", json={"xp": 20, "tasksCompleted": 1})

    record = client.get(f"/api/users/{user_id}").json()
    assert record["xp"] == 20
    assert record["tasks"] == tasks


def test_update_rejects_non_numeric_fields():
    client = TestClient(app)
    user_id = _create(client)["userId"]

    resp = client.put(f"/api/users/{user_id}", json={"xp": "lots", "tasksCompleted": 1})

    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"
    assert client.get(f"/api/users/{user_id}").json()["xp"] == 0


def test_update_unknown_user_is_404():
    client = TestClient(app)

    resp = client.put("/api/users/ghost", json={"xp": 1, "tasksCompleted": 0})

    assert resp.status_code == 404
    assert resp.json()["code"] == "USER_NOT_FOUND"


def test_older_revision_is_refused():
    client = TestClient(app)
    user_id = _create(client)["userId"]

    newer = client.put(f"/api/users/{user_id}", json={"xp": 300, "tasksCompleted": 2, "revision": 20})
    older = client.put(f"/api/users/{user_id}", json={"xp": 150, "tasksCompleted": 1, "revision": 10})

    assert newer.status_code == 200
    assert newer.json()["revision"] == 20
    assert older.status_code == 409
    assert older.json()["code"] == "STALE_WRITE"
    assert client.get(f"/api/users/{user_id}").json()["xp"] == 300


def test_leaderboard_orders_by_xp_and_ranks():
    client = TestClient(app)
    for identifier, xp in (("low", 100), ("high", 2000), ("mid", 700)):
        user_id = _create(client, identifier, name=identifier)["userId"]
        client.put(f"/api/users/{user_id}", json={"xp": xp, "tasksCompleted": 1})

    board = client.get("/api/leaderboard").json()

    assert [entry["name"] for entry in board] == ["high", "mid", "low"]
    assert [entry["rank"] for entry in board] == [1, 2, 3]
    assert board[0]["level"] == 3

    page = client.get("/api/leaderboard", params={"limit": 1, "offset": 1}).json()
    assert [(entry["name"], entry["rank"]) for entry in page] == [("mid", 2)]


def test_leaderboard_rejects_bad_paging():
    client = TestClient(app)

    assert client.get("/api/leaderboard", params={"limit": 0}).status_code == 400
    assert client.get("/api/leaderboard", params={"offset": -1}).status_code == 400
