"""End-to-end walk through the blog: sign up, post, discuss, delete."""

from fastapi.testclient import TestClient

from tests.conftest import auth_header


def test_post_lifecycle(client: TestClient) -> None:
    registered = client.post(
        "/auth/register",
        json={"username": "alice", "email": "a@x.com", "password": "secret1"},
    )
    assert registered.status_code == 201

    login = client.post("/auth/login", json={"email": "a@x.com", "password": "secret1"})
    assert login.status_code == 200
    token = login.json()["token"]
    user = login.json()["user"]
    headers = auth_header(token)

    category = client.post("/categories", json={"name": "General"}, headers=headers)
    assert category.status_code == 201

    created = client.post(
        "/posts",
        data={
            "title": "Hello World",
            "content": "My first post",
            "author": user["id"],
            "category": category.json()["id"],
        },
        headers=headers,
    )
    assert created.status_code == 201
    post = created.json()
    assert post["slug"] == "hello-world"

    comments = client.post(
        f"/posts/{post['id']}/comments", json={"name": "Bob", "content": "nice"}
    )
    assert comments.status_code == 201
    assert len(comments.json()) == 1
    comment_id = comments.json()[0]["id"]

    replies = client.post(
        f"/posts/{post['id']}/comments/{comment_id}/replies",
        json={"name": "Carol", "content": "agreed"},
    )
    assert replies.status_code == 201
    assert len(replies.json()) == 1

    fetched = client.get(f"/posts/{post['id']}").json()
    assert len(fetched["comments"]) == 1
    assert len(fetched["comments"][0]["replies"]) == 1

    deleted = client.delete(f"/posts/{post['id']}", headers=headers)
    assert deleted.status_code == 200

    assert client.get(f"/posts/{post['id']}").status_code == 404
