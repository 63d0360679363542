import time


def blob_key(document_id: str, name: str) -> str:
    """Build a blob key: documents/{document_id}/{name}"""
    return f"documents/{document_id}/{name}"


def versioned_blob_key(document_id: str, prefix: str, extension: str = "docx") -> str:
    """Fresh key such as documents/{id}/preview-{epoch_ms}.docx"""
    return blob_key(document_id, f"{prefix}-{time.time_ns() // 1_000_000}.{extension}")
