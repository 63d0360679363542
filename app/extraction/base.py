from abc import ABC, abstractmethod

from app.templates.models import Template


class BaseExtractor(ABC):
    """Contract for all chunk extraction adapters."""

    @abstractmethod
    def extract_chunk(
        self,
        chunk: str,
        chunk_index: int,
        used_keys: set[str],
        total_chunks: int = 1,
    ) -> Template | None:
        """Identify placeholders in one chunk of document text.

        Args:
            chunk: Chunk text as produced by the chunker.
            chunk_index: 0-based position of the chunk in the document.
            used_keys: Keys already taken by earlier chunks. Advisory only;
                       collisions are resolved after the last chunk.
            total_chunks: Number of chunks in the document.

        Returns:
            Template fragment with content nodes and placeholders, or None
            when the extractor is configured to skip the chunk.

        Raises:
            ExtractionError: on any failure. Not retried.
        """
