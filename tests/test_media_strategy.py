from __future__ import annotations

import pytest
from conftest import FakeMediaStore

from propsync.services.sync.media import (
    REHOST_LIMIT,
    HybridMediaStrategist,
    estimated_storage_saved_mb,
)


def _urls(count: int) -> list[str]:
    return [f"https://cdn.example.com/9/img{i}.jpg" for i in range(count)]


@pytest.mark.parametrize("count", [4, 5, 12])
def test_first_images_are_rehosted_and_rest_referenced(count: int) -> None:
    store = FakeMediaStore()
    strategist = HybridMediaStrategist(store)

    result = strategist.distribute_images(_urls(count), [], "9")

    assert result.rehosted_count == REHOST_LIMIT
    assert result.cdn_count == count - REHOST_LIMIT
    assert result.cdn_gallery_urls == _urls(count)[REHOST_LIMIT:]
    assert result.rehosted_images[0] == "/media/bayut/9/photos/img0.jpg"
    # referenced images are never downloaded
    assert len(store.calls) == REHOST_LIMIT
    assert result.errors == []


@pytest.mark.parametrize("count", [0, 1, 3])
def test_small_galleries_are_fully_rehosted(count: int) -> None:
    result = HybridMediaStrategist(FakeMediaStore()).distribute_images(_urls(count), [], "9")

    assert result.rehosted_count == count
    assert result.cdn_count == 0


def test_floor_plans_are_always_rehosted() -> None:
    store = FakeMediaStore()
    plans = [f"https://cdn.example.com/9/plan{i}.png" for i in range(3)]

    result = HybridMediaStrategist(store).distribute_images(_urls(6), plans, "9")

    assert result.floor_plans_count == 3
    assert result.floor_plan_urls[2] == "/media/bayut/9/floor_plans/plan2.png"
    kinds = [kind for _, _, kind in store.calls]
    assert kinds.count("floor_plans") == 3
    assert kinds.count("photos") == REHOST_LIMIT


def test_duplicate_urls_are_copied_once() -> None:
    store = FakeMediaStore()
    urls = _urls(2) + _urls(2)

    result = HybridMediaStrategist(store).distribute_images(urls, [], "9")

    assert result.rehosted_count == 2
    assert len(store.calls) == 2


def test_failed_copy_is_omitted_and_reported() -> None:
    store = FakeMediaStore(fail_for={"9"})

    result = HybridMediaStrategist(store).distribute_images(_urls(1), [], "9")

    assert result.rehosted_images == []
    assert len(result.errors) == 1
    assert "Image rehost failed for 9" in result.errors[0]


def test_all_failed_copies_of_a_listing_share_one_error() -> None:
    store = FakeMediaStore(fail_for={"9"})
    plans = ["https://cdn.example.com/9/plan-a.png", "https://cdn.example.com/9/plan-b.png"]

    result = HybridMediaStrategist(store).distribute_images(_urls(7), plans, "9")

    assert result.rehosted_count == 0
    assert result.floor_plans_count == 0
    assert result.cdn_count == 3
    assert len(store.calls) == 6
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Image rehost failed for 9: 6 of 6 copies failed")
    assert "img0.jpg" in result.errors[0]


def test_store_error_tuple_is_reported() -> None:
    class RefusingStore:
        def rehost(self, url, external_id, kind="photos"):
            return None, "HTTP 404"

    result = HybridMediaStrategist(RefusingStore()).distribute_images(_urls(6), [], "9")

    assert result.rehosted_count == 0
    assert result.cdn_count == 2
    assert result.errors == ["Image rehost failed for 9: 4 of 4 copies failed (first: HTTP 404)"]


def test_custom_rehost_limit() -> None:
    result = HybridMediaStrategist(FakeMediaStore(), rehost_limit=2).distribute_images(
        _urls(5), [], "9"
    )

    assert (result.rehosted_count, result.cdn_count) == (2, 3)


def test_estimated_storage_saved() -> None:
    assert estimated_storage_saved_mb(0) == 0
    assert estimated_storage_saved_mb(8) == pytest.approx(1.953125)
