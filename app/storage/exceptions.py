class BlobStoreError(Exception):
    """Raised when a blob cannot be written or read."""


class BlobNotFoundError(BlobStoreError):
    """Raised when a blob URL does not resolve to stored content."""
