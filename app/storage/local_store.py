from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from app.storage.base import BaseBlobStore
from app.storage.exceptions import BlobNotFoundError, BlobStoreError


class LocalBlobStore(BaseBlobStore):
    """Stores blobs on the local filesystem and returns ``file://`` URLs.

    ``get`` also accepts ``http(s)`` URLs so documents uploaded to a remote
    store can still be read.
    """

    def __init__(self, root: Path, fetch_timeout_seconds: int = 30) -> None:
        self._root = root.resolve()
        self._fetch_timeout_seconds = fetch_timeout_seconds

    def put(self, key: str, data: bytes, content_type: str) -> str:
        _ = content_type  # the filesystem keeps no metadata
        path = self._resolve_key(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise BlobStoreError(f"Failed to write blob {key}: {exc}") from exc
        return path.as_uri()

    def get(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme in ("http", "https"):
            return self._fetch(url)
        if parsed.scheme != "file":
            raise BlobStoreError(f"Unsupported blob URL scheme '{parsed.scheme}'")
        path = Path(unquote(parsed.path))
        if not path.exists():
            raise BlobNotFoundError(f"Blob not found: {url}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise BlobStoreError(f"Failed to read blob {url}: {exc}") from exc

    def _resolve_key(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root):
            raise BlobStoreError(f"Blob key escapes storage root: {key}")
        return path

    def _fetch(self, url: str) -> bytes:
        try:
            response = httpx.get(url, timeout=self._fetch_timeout_seconds, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise BlobStoreError(f"Failed to fetch blob {url}: {exc}") from exc
        if response.status_code == 404:
            raise BlobNotFoundError(f"Blob not found: {url}")
        if response.is_error:
            raise BlobStoreError(f"Failed to fetch blob {url}: HTTP {response.status_code}")
        return response.content
