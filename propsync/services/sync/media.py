"""Hybrid media storage: rehost a few images, reference the rest on the CDN."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from propsync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

REHOST_LIMIT = 4
AVERAGE_IMAGE_SIZE_KB = 250


class MediaRehoster(Protocol):
    def rehost(
        self, url: str, external_id: str, kind: str = "photos"
    ) -> tuple[str | None, str | None]: ...


@dataclass
class MediaDistribution:
    rehosted_images: list[str] = field(default_factory=list)
    cdn_gallery_urls: list[str] = field(default_factory=list)
    floor_plan_urls: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def rehosted_count(self) -> int:
        return len(self.rehosted_images)

    @property
    def cdn_count(self) -> int:
        return len(self.cdn_gallery_urls)

    @property
    def floor_plans_count(self) -> int:
        return len(self.floor_plan_urls)


def estimated_storage_saved_mb(cdn_count: int) -> float:
    """Approximate storage avoided by referencing ``cdn_count`` images."""
    return cdn_count * AVERAGE_IMAGE_SIZE_KB / 1024


def _dedupe(urls: list[str]) -> list[str]:
    seen: list[str] = []
    for url in urls:
        if url and url not in seen:
            seen.append(url)
    return seen


class HybridMediaStrategist:
    """Split listing images between owned storage and CDN references.

    The first ``rehost_limit`` candidates are copied; the remainder are kept
    as provider URLs and never downloaded. Floor plans are always copied.
    A failed copy is dropped from the result. All failed copies of one
    listing are reported as a single entry in ``errors``.
    """

    def __init__(self, store: MediaRehoster, rehost_limit: int = REHOST_LIMIT) -> None:
        self.store = store
        self.rehost_limit = rehost_limit

    def _copy(self, url: str, external_id: str, kind: str) -> tuple[str | None, str | None]:
        try:
            return self.store.rehost(url, external_id, kind)
        except Exception as exc:  # store errors must not abort the listing
            return None, str(exc) or exc.__class__.__name__

    def distribute_images(
        self,
        candidate_urls: list[str],
        floor_plan_urls: list[str],
        external_id: str,
    ) -> MediaDistribution:
        candidates = _dedupe(candidate_urls)
        result = MediaDistribution(cdn_gallery_urls=candidates[self.rehost_limit :])
        attempts = 0
        failures: list[str] = []

        for kind, urls, owned_urls in (
            ("photos", candidates[: self.rehost_limit], result.rehosted_images),
            ("floor_plans", _dedupe(floor_plan_urls), result.floor_plan_urls),
        ):
            for url in urls:
                attempts += 1
                owned, error = self._copy(url, external_id, kind)
                if owned:
                    owned_urls.append(owned)
                else:
                    logger.warning(f"Rehost of {kind} image failed for {external_id}: {error}")
                    failures.append(error or "unknown error")

        if failures:
            result.errors.append(
                f"Image rehost failed for {external_id}: {len(failures)} of {attempts} "
                f"copies failed (first: {failures[0]})"
            )
        return result


__all__ = [
    "AVERAGE_IMAGE_SIZE_KB",
    "REHOST_LIMIT",
    "HybridMediaStrategist",
    "MediaDistribution",
    "MediaRehoster",
    "estimated_storage_saved_mb",
]
