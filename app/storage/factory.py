from pathlib import Path

from app.config.settings import Settings
from app.storage.base import BaseBlobStore
from app.storage.local_store import LocalBlobStore


class BlobStoreFactory:
    """Creates the blob store based on settings."""

    @classmethod
    def create(cls, settings: Settings) -> BaseBlobStore:
        return LocalBlobStore(
            root=Path(settings.blob_storage_root),
            fetch_timeout_seconds=settings.blob_fetch_timeout_seconds,
        )
