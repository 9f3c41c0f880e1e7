"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlsplit

import pytest
import requests
from requests import Response

from propsync.infrastructure.db import ensure_schema
from propsync.infrastructure.http.client import ProviderClient
from propsync.infrastructure.observability.metrics import get_registry


class FakeSession:
    """Stand-in for ``requests.Session`` that serves queued responses by path.

    The last queued response for a path is reused for further calls.
    """

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self._responses: dict[str, list[Any]] = {}

    def add(self, path: str, payload: Any, status: int = 200) -> None:
        self._responses.setdefault(path, []).append((status, payload))

    def fail(self, path: str, exc: Exception) -> None:
        self._responses.setdefault(path, []).append(exc)

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = urlsplit(url).path
        self.calls.append(
            {
                "method": method,
                "path": path,
                "params": params,
                "json": json,
                "headers": headers,
                "timeout": timeout,
            }
        )
        queue = self._responses.get(path)
        if not queue:
            raise requests.ConnectionError(f"no fake response for {path}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        status, payload = item
        return make_response(status, payload)


def make_response(status: int, payload: Any) -> Response:
    resp = Response()
    resp.status_code = status
    if isinstance(payload, str):
        resp._content = payload.encode("utf-8")
    else:
        resp._content = json.dumps(payload).encode("utf-8")
    return resp


class FakeMediaStore:
    """Records rehost calls; listings in ``fail_for`` raise on every copy."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.fail_for = fail_for or set()
        self.calls: list[tuple[str, str, str]] = []

    def rehost(self, url: str, external_id: str, kind: str = "photos"):
        self.calls.append((url, external_id, kind))
        if external_id in self.fail_for:
            raise RuntimeError(f"storage unavailable for {url}")
        name = url.rsplit("/", 1)[-1]
        return f"/media/bayut/{external_id}/{kind}/{name}", None


class FixedClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


def make_listing(external_id: str, **overrides: Any) -> dict[str, Any]:
    """Provider listing payload shaped like a ``properties_search`` hit."""
    listing: dict[str, Any] = {
        "id": int(external_id) if external_id.isdigit() else external_id,
        "externalID": external_id,
        "title": f"Marina View Apartment {external_id}",
        "price": 1850000,
        "rooms": "2",
        "baths": 2,
        "area": 1204.6,
        "purpose": "for-sale",
        "category": [{"level": 1, "slug": "apartments", "name": "Apartments"}],
        "location": [
            {"level": 0, "name": "Dubai"},
            {"level": 1, "name": "Dubai Marina"},
            {"level": 2, "name": "Marina Gate"},
        ],
        "geography": {"lat": 25.08, "lng": 55.14},
        "completionStatus": "completed",
        "furnishingStatus": "furnished",
        "permitNumber": "71234567",
        "amenities": ["Balcony", "Shared Pool"],
        "coverPhoto": {"url": f"https://cdn.example.com/{external_id}/cover.jpg"},
        "photos": [],
    }
    listing.update(overrides)
    return listing


@pytest.fixture(autouse=True)
def reset_metrics():
    get_registry().reset()
    yield
    get_registry().reset()


@pytest.fixture
def conn(tmp_path):
    connection = sqlite3.connect(tmp_path / "propsync.db")
    ensure_schema(connection)
    try:
        yield connection
    finally:
        connection.close()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def provider_client(fake_session: FakeSession) -> ProviderClient:
    return ProviderClient("test-key", session=fake_session)  # type: ignore[arg-type]


@pytest.fixture
def media_store() -> FakeMediaStore:
    return FakeMediaStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()
