from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.v0 import file_route
from core.errors import UnsupportedError
from core.media import MediaManager
from core.media.local_handler import LocalMediaHandler
from core.media.types import HeaderResult
from core.media.uid import Uid
from repositories.file_record_repo import InMemoryFileRecordRepository


class _RedirectingHandler:
    backend_name = "redirect"

    def init(self, config_json) -> None:
        return None

    async def headers(self, method, url, request_headers, serve) -> HeaderResult:
        return HeaderResult(
            headers={
                "Location": "https://media.example/bucket/key?X-Amz-Expires=120",
                "ETag": '"T"',
                "Content-Type": "application/json; charset=utf-8",
                "Cache-Control": "no-cache, must-revalidate",
            },
            status=308,
        )

    async def upload(self, record, stream):
        raise UnsupportedError("upload")

    async def download(self, url):
        raise UnsupportedError("download")

    async def delete(self, locations):
        return None

    def get_id_from_url(self, url):
        return Uid.ZERO


def _build_client() -> TestClient:
    app = FastAPI()
    app.include_router(file_route.router)
    return TestClient(app)


@pytest.fixture
def store():
    repo = InMemoryFileRecordRepository()
    yield repo
    MediaManager.reset()


@pytest.fixture
def local_client(tmp_path: Path, store) -> TestClient:
    handler = LocalMediaHandler(store)
    handler.init({"upload_dir": str(tmp_path / "uploads"), "cors_origins": ["*"]})
    MediaManager.configure(handler, store)
    return _build_client()


def test_upload_returns_envelope_and_file_is_served(local_client: TestClient, store):
    response = local_client.post(
        "/v0/file/u/",
        files={"file": ("photo.png", b"\x89PNG-bytes", "image/png")},
        headers={"X-User-Id": "user-7"},
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["success"] is True
    data = payload["data"]
    assert data["size"] == len(b"\x89PNG-bytes")
    assert data["mime_type"] == "image/png"
    assert data["url"] == f"/v0/file/s/{data['id']}.png"

    served = local_client.get(data["url"])
    assert served.status_code == 200
    assert served.content == b"\x89PNG-bytes"
    assert served.headers["content-type"] == "image/png"
    assert served.headers["cache-control"] == "no-cache, must-revalidate"

    cached = local_client.get(data["url"], headers={"If-None-Match": served.headers["etag"]})
    assert cached.status_code == 304


def test_upload_guesses_missing_mime_type(local_client: TestClient):
    response = local_client.post(
        "/v0/file/u/",
        files={"file": ("notes.png", b"data", "application/octet-stream")},
    )

    assert response.status_code == 201
    assert response.json()["data"]["mime_type"] == "image/png"


def test_empty_upload_is_rejected(local_client: TestClient):
    response = local_client.post("/v0/file/u/", files={"file": ("empty.png", b"", "image/png")})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "MEDIA_UPLOAD_INVALID"


def test_unknown_file_is_not_found(local_client: TestClient):
    response = local_client.get(f"/v0/file/s/{Uid.generate()}.png")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "RESOURCE_NOT_FOUND"


def test_preflight_is_answered_without_lookup(local_client: TestClient):
    response = local_client.options("/v0/file/s/anything.png", headers={"Origin": "https://chat.example"})

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-max-age"] == "86400"


def test_redirect_is_returned_without_following(store):
    MediaManager.configure(_RedirectingHandler(), store)
    client = _build_client()

    response = client.get("/v0/file/s/anything.png", follow_redirects=False)

    assert response.status_code == 308
    assert response.headers["location"].startswith("https://media.example/bucket/key")
    assert response.headers["etag"] == '"T"'


def test_unsupported_upload_maps_to_501(store):
    MediaManager.configure(_RedirectingHandler(), store)
    client = _build_client()

    response = client.post("/v0/file/u/", files={"file": ("a.png", b"data", "image/png")})

    assert response.status_code == 501
    assert response.json()["detail"]["code"] == "MEDIA_UNSUPPORTED"
