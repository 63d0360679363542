from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Literal

from app.templates.models import Template

ProcessingStatus = Literal["pending", "processing", "ready", "failed"]

STATUS_PENDING: ProcessingStatus = "pending"
STATUS_PROCESSING: ProcessingStatus = "processing"
STATUS_READY: ProcessingStatus = "ready"
STATUS_FAILED: ProcessingStatus = "failed"

ACTIVE_STATUSES: tuple[str, ...] = (STATUS_PENDING, STATUS_PROCESSING)


@dataclass
class DocumentRecord:
    """Represents a row from the documents table.

    ``plain_text`` is transient: it is only loaded on request and is cleared
    once processing completes.
    """

    id: str
    filename: str
    mime_type: str
    original_blob_url: str
    filled_blob_url: str | None = None
    template: Template = field(default_factory=Template)
    plain_text: str | None = None
    processing_status: str = STATUS_PENDING
    processing_progress: int = 0
    processing_total_chunks: int = 0
    processing_next_chunk: int = 0
    processing_error: str | None = None
    created_at: datetime | None = None

    @property
    def is_ready(self) -> bool:
        return self.processing_status == STATUS_READY


def strip_private_fields(record: DocumentRecord) -> DocumentRecord:
    """Copy of the record without the transient plain text."""
    return replace(record, plain_text=None)
