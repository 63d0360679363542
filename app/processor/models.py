from dataclasses import dataclass
from typing import Literal

from app.database.models import DocumentRecord

BatchStatus = Literal["ready", "processing", "failed", "missing"]


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one ``process_next_batch`` call."""

    status: BatchStatus
    document: DocumentRecord | None = None
    error: str | None = None

