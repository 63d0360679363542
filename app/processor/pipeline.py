from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from app.database.models import DocumentRecord
from app.templates.models import Template


@dataclass(slots=True)
class ChunkOutcome:
    """Extraction result for one chunk: either a fragment or the raised error."""

    chunk_index: int
    fragment: Template | None = None
    error: Exception | None = None


@dataclass(slots=True)
class BatchContext:
    document_id: str
    document: DocumentRecord
    chunks: list[str]
    start_chunk: int
    end_chunk: int
    template: Template = field(default_factory=Template)
    outcomes: list[ChunkOutcome] = field(default_factory=list)
    next_chunk: int = 0
    renamed: bool = False
    error_message: str = ""

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    @property
    def is_complete(self) -> bool:
        return self.next_chunk >= self.total_chunks


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: BatchContext) -> BatchContext:
        raise NotImplementedError
