from fastapi.testclient import TestClient

from services.upload.application.upload_registry import UploadRegistry
from services.upload.domain.upload import UploadState
from services.upload.main import build_app


def test_ping():
    client = TestClient(build_app(UploadRegistry()))

    assert client.get("/ping").json() == {"message": "pong"}


def test_list_uploads_returns_retained_records_oldest_first():
    registry = UploadRegistry()
    registry.begin("first.webm", 1)
    second = registry.begin("second.webm", 2)
    third = registry.begin("third.webm", 3)
    registry.update_progress(third, 48.0, "Uploading - 40%", UploadState.IN_PROGRESS)
    client = TestClient(build_app(registry))

    body = client.get("/uploads").json()

    assert [item["handle"] for item in body] == [second, third]
    assert body[1]["percent"] == 48.0
    assert body[1]["state"] == "in_progress"
    assert body[1]["started_at"].endswith("Z")


def test_get_upload_by_handle():
    registry = UploadRegistry()
    handle = registry.begin("lecture.webm", 1024)
    client = TestClient(build_app(registry))

    response = client.get(f"/uploads/{handle}")

    assert response.status_code == 200
    assert response.json()["filename"] == "lecture.webm"
    assert response.json()["size"] == 1024


def test_unknown_upload_is_404():
    client = TestClient(build_app(UploadRegistry()))

    assert client.get("/uploads/missing").status_code == 404
