from abc import ABC, abstractmethod


class BaseBlobStore(ABC):
    """Contract for blob storage backends.

    Keys are chosen by the caller and never overwritten: every write uses a
    fresh, timestamped key.
    """

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store bytes under ``key`` and return the blob URL.

        Raises:
            BlobStoreError: if the write fails.
        """

    @abstractmethod
    def get(self, url: str) -> bytes:
        """Fetch the bytes behind a URL previously returned by ``put``.

        Raises:
            BlobNotFoundError: if nothing is stored at the URL.
            BlobStoreError: on any other read failure.
        """
