"""Owned media storage for rehosted listing images.

Files are stored in a deterministic directory structure:
    {media_root}/{source}/{external_id}/{kind}/{sha1(url)[:16]}{ext}

and served from ``media_base_url`` with the same relative path. Because the
filename derives from the source URL, copying the same image twice reuses
the existing file.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from urllib.parse import urlparse

import httpx

from propsync.infrastructure.observability.logging import get_logger
from propsync.infrastructure.observability.metrics import record_media_rehost

logger = get_logger(__name__)


class MediaStore:
    """Downloads provider images into owned storage."""

    EXTENSIONS = {
        "image/jpeg": ".jpg",
        "image/png": ".png",
        "image/webp": ".webp",
        "image/gif": ".gif",
    }

    def __init__(
        self,
        media_root: str | Path,
        media_base_url: str = "/media",
        *,
        source: str = "bayut",
        timeout: float = 30.0,
        max_retries: int = 2,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            media_root: Base directory for stored files.
            media_base_url: Public URL prefix the files are served from.
            source: Provider name used as the top-level directory.
            timeout: HTTP request timeout in seconds.
            max_retries: Maximum number of download attempts per image.
            client: Optional shared ``httpx.Client``; one is created per
                download when omitted.
        """
        self.media_root = Path(media_root)
        self.media_base_url = media_base_url.rstrip("/")
        self.source = source
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self._client = client

    @staticmethod
    def _stem(url: str) -> str:
        return hashlib.sha1(url.encode("utf-8")).hexdigest()[:16]

    def _extension_from_url(self, url: str) -> str | None:
        suffix = Path(urlparse(url).path).suffix.lower()
        if suffix == ".jpeg":
            return ".jpg"
        return suffix if suffix in self.EXTENSIONS.values() else None

    def _directory(self, external_id: str, kind: str) -> Path:
        return self.media_root / self.source / str(external_id) / kind

    def public_url(self, path: Path) -> str:
        relative = path.relative_to(self.media_root).as_posix()
        return f"{self.media_base_url}/{relative}"

    def existing(self, url: str, external_id: str, kind: str) -> Path | None:
        directory = self._directory(external_id, kind)
        if not directory.is_dir():
            return None
        for candidate in sorted(directory.glob(f"{self._stem(url)}.*")):
            return candidate
        return None

    def _fetch(self, url: str) -> httpx.Response:
        if self._client is not None:
            response = self._client.get(url, timeout=self.timeout)
        else:
            with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                response = client.get(url)
        response.raise_for_status()
        return response

    def rehost(
        self, url: str, external_id: str, kind: str = "photos"
    ) -> tuple[str | None, str | None]:
        """Copy one image into owned storage.

        Returns:
            Tuple of (public_url, error_message).
            On success: (url_string, None)
            On failure: (None, error_message)
        """
        found = self.existing(url, external_id, kind)
        if found is not None:
            record_media_rehost(kind, "cached")
            return self.public_url(found), None

        error = "Max retries exceeded"
        for attempt in range(self.max_retries):
            try:
                response = self._fetch(url)
            except httpx.HTTPStatusError as exc:
                error = f"HTTP {exc.response.status_code}"
            except httpx.HTTPError as exc:
                error = str(exc) or exc.__class__.__name__
            else:
                content_type = response.headers.get("content-type", "image/jpeg")
                content_type = content_type.split(";")[0].strip()
                ext = self._extension_from_url(url) or self.EXTENSIONS.get(
                    content_type, ".jpg"
                )
                path = self._directory(external_id, kind) / f"{self._stem(url)}{ext}"
                try:
                    path.parent.mkdir(parents=True, exist_ok=True)
                    path.write_bytes(response.content)
                except OSError as exc:
                    error = f"write failed: {exc}"
                    break
                logger.debug(
                    "Rehosted image",
                    extra={"url": url, "path": str(path), "size_bytes": len(response.content)},
                )
                record_media_rehost(kind, "ok")
                return self.public_url(path), None

            if attempt < self.max_retries - 1:
                logger.debug(f"Retrying image download ({error}): {url}")

        logger.warning(f"Failed to rehost {kind} image for {external_id}: {error} ({url})")
        record_media_rehost(kind, "error")
        return None, error


__all__ = ["MediaStore"]
