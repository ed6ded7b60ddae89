"""
API tests for the task routes.
"""
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from todo_backend.services.tasks import TaskStore


@pytest.fixture
def alice(make_account, auth_headers):
    return auth_headers(make_account(name="Alice"))


@pytest.fixture
def bob(make_account, auth_headers):
    return auth_headers(make_account(name="Bob"))


def _create(client, headers, **payload):
    response = client.post("/api/tasks", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_task_routes_require_authentication(client):
    task_id = str(uuid.uuid4())
    calls = [
        client.get("/api/tasks"),
        client.get("/api/tasks/stats"),
        client.post("/api/tasks", json={"title": "x"}),
        client.get(f"/api/tasks/{task_id}"),
        client.put(f"/api/tasks/{task_id}", json={"title": "x"}),
        client.delete(f"/api/tasks/{task_id}"),
        client.patch(f"/api/tasks/{task_id}/toggle"),
    ]

    assert [response.status_code for response in calls] == [401] * len(calls)


def test_buy_milk_flow(client, alice, bob):
    task = _create(client, alice, title="Buy milk")
    assert task["completed"] is False

    listed = client.get("/api/tasks", headers=alice).json()
    assert listed["total"] == 1
    assert listed["tasks"][0]["id"] == task["id"]

    toggled = client.patch(f"/api/tasks/{task['id']}/toggle", headers=alice)
    assert toggled.status_code == 200
    assert toggled.json()["completed"] is True

    done = client.get("/api/tasks", params={"completed": "true"}, headers=alice).json()
    assert done["total"] == 1

    assert client.get("/api/tasks", headers=bob).json() == {"tasks": [], "total": 0}


def test_create_returns_full_task(client, alice):
    task = _create(
        client,
        alice,
        title="  Dentist  ",
        description="Check-up",
        category="Health",
        dueDate="2030-03-01T09:30:00+01:00",
    )

    assert task["title"] == "Dentist"
    assert task["category"] == "Health"
    assert task["dueDate"] == "2030-03-01T08:30:00Z"
    assert task["completed"] is False
    assert task["createdAt"].endswith("Z")
    uuid.UUID(task["id"])
    uuid.UUID(task["userId"])


def test_create_ignores_client_supplied_owner_and_completion(client, alice, bob):
    someone_else = str(uuid.uuid4())

    task = _create(client, alice, title="Mine", userId=someone_else, completed=True)

    assert task["userId"] != someone_else
    assert task["completed"] is False
    assert client.get(f"/api/tasks/{task['id']}", headers=alice).status_code == 200
    assert client.get(f"/api/tasks/{task['id']}", headers=bob).status_code == 404


@pytest.mark.parametrize("payload", [{}, {"title": ""}, {"title": "   "}, {"title": None}])
def test_create_requires_title(client, alice, payload):
    response = client.post("/api/tasks", json=payload, headers=alice)

    assert response.status_code == 400


def test_naive_due_date_is_treated_as_utc(client, alice):
    task = _create(client, alice, title="Naive", dueDate="2030-01-01T00:00:00")

    assert task["dueDate"] == "2030-01-01T00:00:00Z"

    response = client.put(
        f"/api/tasks/{task['id']}", json={"dueDate": "2031-06-15T12:30:00"}, headers=alice
    )

    assert response.status_code == 200
    assert response.json()["dueDate"] == "2031-06-15T12:30:00Z"


def test_cross_user_update_is_not_found_and_harmless(client, alice, bob):
    task = _create(client, alice, title="Original", description="keep")

    response = client.put(f"/api/tasks/{task['id']}", json={"title": "x"}, headers=bob)

    assert response.status_code == 404
    refetched = client.get(f"/api/tasks/{task['id']}", headers=alice).json()
    assert refetched["title"] == "Original"
    assert refetched["description"] == "keep"


def test_cross_user_errors_match_missing_task_errors(client, alice, bob):
    task = _create(client, alice, title="Alice's")
    missing = str(uuid.uuid4())

    for method, suffix, kwargs in [
        ("put", "", {"json": {"title": "x"}}),
        ("delete", "", {}),
        ("patch", "/toggle", {}),
        ("get", "", {}),
    ]:
        foreign = client.request(method, f"/api/tasks/{task['id']}{suffix}", headers=bob, **kwargs)
        absent = client.request(method, f"/api/tasks/{missing}{suffix}", headers=bob, **kwargs)
        assert foreign.status_code == absent.status_code == 404
        assert foreign.json() == absent.json()


def test_partial_update_keeps_other_fields(client, alice):
    task = _create(client, alice, title="Plan", description="details", category="Work")

    response = client.put(f"/api/tasks/{task['id']}", json={"completed": True}, headers=alice)

    assert response.status_code == 200
    body = response.json()
    assert body["completed"] is True
    assert body["title"] == "Plan"
    assert body["description"] == "details"
    assert body["category"] == "Work"


def test_update_cannot_move_task_to_another_owner(client, alice, bob):
    task = _create(client, alice, title="Stay mine")

    response = client.put(
        f"/api/tasks/{task['id']}",
        json={"userId": str(uuid.uuid4()), "title": "Still mine"},
        headers=alice,
    )

    assert response.json()["userId"] == task["userId"]
    assert client.get("/api/tasks", headers=bob).json()["total"] == 0


def test_update_rejects_blank_title(client, alice):
    task = _create(client, alice, title="Keep me")

    response = client.put(f"/api/tasks/{task['id']}", json={"title": "  "}, headers=alice)

    assert response.status_code == 400


def test_delete(client, alice, bob):
    task = _create(client, alice, title="Disposable")

    assert client.delete(f"/api/tasks/{task['id']}", headers=bob).status_code == 404
    response = client.delete(f"/api/tasks/{task['id']}", headers=alice)
    assert response.status_code == 204
    assert response.content == b""
    assert client.delete(f"/api/tasks/{task['id']}", headers=alice).status_code == 404


def test_toggle_twice_restores_state(client, alice):
    task = _create(client, alice, title="Flip")

    client.patch(f"/api/tasks/{task['id']}/toggle", headers=alice)
    second = client.patch(f"/api/tasks/{task['id']}/toggle", headers=alice).json()

    assert second["completed"] is False


def test_malformed_task_id_is_not_found(client, alice):
    assert client.get("/api/tasks/not-a-uuid", headers=alice).status_code == 404
    assert client.patch("/api/tasks/not-a-uuid/toggle", headers=alice).status_code == 404


def test_list_filters_search_and_pagination(client, alice):
    for i in range(5):
        _create(client, alice, title=f"Report {i}", category="Work")
    _create(client, alice, title="Groceries", description="milk and bread", category="Home")

    work = client.get("/api/tasks", params={"category": "Work"}, headers=alice).json()
    assert work["total"] == 5

    search = client.get("/api/tasks", params={"search": "MILK"}, headers=alice).json()
    assert [t["title"] for t in search["tasks"]] == ["Groceries"]

    ids = set()
    for page in (1, 2, 3):
        body = client.get(
            "/api/tasks", params={"page": page, "limit": 2}, headers=alice
        ).json()
        assert body["total"] == 6
        ids.update(t["id"] for t in body["tasks"])
    assert len(ids) == 6


def test_list_page_far_past_end_is_empty(client, alice):
    _create(client, alice, title="only")

    response = client.get("/api/tasks", params={"page": 10**17}, headers=alice)

    assert response.status_code == 200
    assert response.json() == {"tasks": [], "total": 1}


def test_list_sorts_by_requested_field(client, alice):
    for title in ["b", "c", "a"]:
        _create(client, alice, title=title)

    body = client.get("/api/tasks", params={"sortBy": "title"}, headers=alice).json()

    assert [t["title"] for t in body["tasks"]] == ["c", "b", "a"]


@pytest.mark.parametrize(
    "params",
    [{"sortBy": "userId"}, {"page": 0}, {"limit": 0}, {"limit": 5000}, {"completed": "maybe"}],
)
def test_list_rejects_bad_query(client, alice, params):
    assert client.get("/api/tasks", params=params, headers=alice).status_code == 400


def test_stats(client, alice, bob):
    first = _create(client, alice, title="a", category="Work")
    _create(client, alice, title="b", category="Work")
    _create(client, alice, title="c")
    _create(client, bob, title="d", category="Other")
    client.patch(f"/api/tasks/{first['id']}/toggle", headers=alice)

    stats = client.get("/api/tasks/stats", headers=alice).json()

    assert stats == {
        "total": 3,
        "completed": 1,
        "pending": 2,
        "byCategory": {"Work": 2, "Uncategorized": 1},
    }


def test_store_failure_becomes_generic_server_error(app, make_account, auth_headers, monkeypatch):
    def broken_stats(self):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(TaskStore, "stats", broken_stats)
    headers = auth_headers(make_account())

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/tasks/stats", headers=headers)

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
    assert "locked" not in response.text
