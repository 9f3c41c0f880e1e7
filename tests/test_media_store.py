from __future__ import annotations

import httpx

from propsync.infrastructure.observability.metrics import MEDIA_REHOSTS, get_registry
from propsync.infrastructure.persistence import MediaStore


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_rehost_writes_file_under_listing_directory(tmp_path) -> None:
    requests_seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(str(request.url))
        return httpx.Response(200, content=b"\xff\xd8jpeg", headers={"content-type": "image/jpeg"})

    store = MediaStore(tmp_path, "/media/", client=_client(handler))

    public_url, error = store.rehost("https://cdn.example.com/a/cover.jpeg", "5001")

    assert error is None
    assert public_url is not None
    assert public_url.startswith("/media/bayut/5001/photos/")
    assert public_url.endswith(".jpg")
    stored = list((tmp_path / "bayut" / "5001" / "photos").iterdir())
    assert len(stored) == 1
    assert stored[0].read_bytes() == b"\xff\xd8jpeg"
    assert requests_seen == ["https://cdn.example.com/a/cover.jpeg"]


def test_existing_copy_is_reused(tmp_path) -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(200, content=b"png", headers={"content-type": "image/png"})

    store = MediaStore(tmp_path, client=_client(handler))
    url = "https://cdn.example.com/plan?id=7"

    first, _ = store.rehost(url, "5001", "floor_plans")
    second, _ = store.rehost(url, "5001", "floor_plans")

    assert first == second
    assert first.endswith(".png")
    assert len(calls) == 1
    counter = get_registry().counter(MEDIA_REHOSTS)
    assert counter.get({"kind": "floor_plans", "status": "cached"}) == 1


def test_http_error_is_retried_then_reported(tmp_path) -> None:
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        return httpx.Response(404)

    store = MediaStore(tmp_path, client=_client(handler), max_retries=3)

    public_url, error = store.rehost("https://cdn.example.com/missing.jpg", "9")

    assert public_url is None
    assert error == "HTTP 404"
    assert len(attempts) == 3
    assert not (tmp_path / "bayut" / "9").exists()


def test_transport_error_is_reported(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = MediaStore(tmp_path, client=_client(handler), max_retries=1)

    public_url, error = store.rehost("https://cdn.example.com/x.webp", "9")

    assert public_url is None
    assert "connection refused" in error
    counter = get_registry().counter(MEDIA_REHOSTS)
    assert counter.get({"kind": "photos", "status": "error"}) == 1
