from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app import main
from app.database import get_db


@pytest.fixture()
def client(session_factory: sessionmaker) -> Iterator[TestClient]:
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    main.app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()


def _create_user(client: TestClient, username: str) -> int:
    response = client.post("/api/v1/users", json={"username": username, "email": f"{username}@example.com"})
    assert response.status_code == 201
    return response.json()["id"]


def test_health(client: TestClient) -> None:
    assert client.get("/").json() == {"status": "ok"}


def test_timeline_scenario_over_http(client: TestClient) -> None:
    alice = _create_user(client, "alice")
    bob = _create_user(client, "bob")
    charlie = _create_user(client, "charlie")

    for friend in (bob, charlie):
        response = client.post("/api/v1/friendships", json={"user_id": alice, "friend_id": friend})
        assert response.status_code == 201
    assert client.get(f"/api/v1/friendships/user/{alice}/count").json()["friend_count"] == 2

    assert client.post("/api/v1/posts", json={"user_id": bob, "text": "hi"}).status_code == 201
    assert client.post("/api/v1/posts", json={"user_id": charlie, "text": "yo"}).status_code == 201

    entries = client.get(f"/api/v1/timeline/user/{alice}").json()
    assert {entry["text"] for entry in entries} == {"hi", "yo"}
    assert client.get(f"/api/v1/timeline/user/{alice}/count").json()["post_count"] == 2

    page = client.get(f"/api/v1/timeline/user/{alice}/paginated", params={"page": 1, "size": 1}).json()
    assert page["total_elements"] == 2
    assert page["content"] == entries[1:2]

    response = client.request("DELETE", "/api/v1/friendships", json={"user_id": alice, "friend_id": bob})
    assert response.status_code == 204
    assert [e["author_username"] for e in client.get(f"/api/v1/timeline/user/{alice}").json()] == ["charlie"]


def test_date_range_parameters(client: TestClient) -> None:
    alice = _create_user(client, "alice")
    bob = _create_user(client, "bob")
    client.post("/api/v1/friendships", json={"user_id": alice, "friend_id": bob})
    client.post("/api/v1/posts", json={"user_id": bob, "text": "recent"})

    past = {"fromDate": "2000-01-01T00:00:00", "toDate": "2000-12-31T23:59:59"}
    assert client.get(f"/api/v1/timeline/user/{alice}/daterange", params=past).json() == []
    counted = client.get(f"/api/v1/timeline/user/{alice}/count/daterange", params={"fromDate": "2000-01-01T00:00:00Z"})
    assert counted.json()["post_count"] == 1
    filtered = client.get(f"/api/v1/timeline/user/{alice}/filtered", params={"fromDate": "2000-01-01T00:00:00"})
    assert filtered.json()["total_elements"] == 1


def test_error_mapping(client: TestClient) -> None:
    alice = _create_user(client, "alice")

    missing = client.get("/api/v1/users/999")
    assert missing.status_code == 404
    assert missing.json()["field"] == "user_id"

    assert client.get("/api/v1/timeline/user/999").status_code == 404
    assert client.post("/api/v1/posts", json={"user_id": alice, "text": "   "}).status_code == 400
    assert client.post("/api/v1/friendships", json={"user_id": alice, "friend_id": alice}).status_code == 400

    duplicate = client.post("/api/v1/users", json={"username": "alice", "email": "x@example.com"})
    assert duplicate.status_code == 400
    assert "already exists" in duplicate.json()["detail"]

    bob = _create_user(client, "bob")
    client.post("/api/v1/friendships", json={"user_id": alice, "friend_id": bob})
    again = client.post("/api/v1/friendships", json={"user_id": bob, "friend_id": alice})
    assert again.status_code == 400
    check = client.get("/api/v1/friendships/check", params={"user_id": bob, "friend_id": alice}).json()
    assert check["are_friends"] is True


def test_post_crud_and_search(client: TestClient) -> None:
    alice = _create_user(client, "alice")
    created = client.post("/api/v1/posts", json={"user_id": alice, "text": "Hello there"}).json()

    updated = client.put(f"/api/v1/posts/{created['id']}", json={"text": "Hello again"})
    assert updated.status_code == 200
    assert updated.json()["created_at"] == created["created_at"]

    assert [p["text"] for p in client.get("/api/v1/posts/search", params={"search": "HELLO"}).json()] == ["Hello again"]
    assert len(client.get(f"/api/v1/posts/user/{alice}").json()) == 1
    assert len(client.get("/api/v1/posts", params={"page": 0, "size": 5}).json()) == 1

    assert client.delete(f"/api/v1/posts/{created['id']}").status_code == 204
    assert client.get(f"/api/v1/posts/{created['id']}").status_code == 404


def test_user_update_and_delete(client: TestClient) -> None:
    alice = _create_user(client, "alice")

    renamed = client.put(f"/api/v1/users/{alice}", json={"username": "ally", "email": "ally@example.com"})
    assert renamed.status_code == 200
    assert client.get("/api/v1/users/username/ally").json()["id"] == alice

    assert client.delete(f"/api/v1/users/{alice}").status_code == 204
    assert client.get("/api/v1/users").json() == []
