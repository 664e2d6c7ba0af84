"""HTTP tests for POST /posts/upload."""

import warnings

from fastapi.testclient import TestClient

from tests.conftest import PNG_BYTES, auth_header


def test_upload(client: TestClient, register, storage) -> None:
    token, _ = register()

    response = client.post(
        "/posts/upload",
        files={"image": ("cat.png", PNG_BYTES, "image/png")},
        headers=auth_header(token),
    )

    assert response.status_code == 200
    image_url = response.json()["imageUrl"]
    assert image_url.startswith("/uploads/")
    assert image_url.endswith("-cat.png")


def test_upload_requires_auth(client: TestClient) -> None:
    response = client.post(
        "/posts/upload", files={"image": ("cat.png", PNG_BYTES, "image/png")}
    )
    assert response.status_code == 401


def test_no_file(client: TestClient, register) -> None:
    token, _ = register()

    response = client.post("/posts/upload", headers=auth_header(token))

    assert response.status_code == 400
    assert response.json()["error"] == "No file uploaded"


def test_unsupported_type(client: TestClient, register) -> None:
    token, _ = register()

    response = client.post(
        "/posts/upload",
        files={"image": ("doc.pdf", b"%PDF-1.7", "application/pdf")},
        headers=auth_header(token),
    )

    assert response.status_code == 415


def test_spoofed_content(client: TestClient, register) -> None:
    token, _ = register()

    response = client.post(
        "/posts/upload",
        files={"image": ("x.png", b"not really a png", "image/png")},
        headers=auth_header(token),
    )

    assert response.status_code == 400


def test_oversized_upload(client: TestClient, register, storage, monkeypatch) -> None:
    token, _ = register()
    monkeypatch.setattr(storage.settings, "upload_max_file_size_mb", 1)

    with warnings.catch_warnings():
        warnings.filterwarnings("error", message=".*HTTP_413")
        response = client.post(
            "/posts/upload",
            files={"image": ("big.png", PNG_BYTES + bytes(1024 * 1024), "image/png")},
            headers=auth_header(token),
        )

    assert response.status_code == 413
    assert response.json()["error"].startswith("File size")
