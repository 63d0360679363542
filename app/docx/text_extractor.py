import io
from abc import ABC, abstractmethod

import docx

from app.docx.exceptions import DocxTextExtractionError
from app.docx.paragraphs import iter_paragraphs


class BaseTextExtractor(ABC):
    """Contract for document text extraction adapters."""

    @abstractmethod
    def extract(self, data: bytes) -> str:
        """Extract plain text with paragraphs separated by a blank line.

        Raises:
            DocxTextExtractionError: if extraction fails for any reason.
        """


class DocxTextExtractor(BaseTextExtractor):
    """Extracts paragraph text from DOCX using python-docx."""

    def extract(self, data: bytes) -> str:
        try:
            document = docx.Document(io.BytesIO(data))
            paragraphs = [paragraph.text for paragraph in iter_paragraphs(document)]
        except Exception as exc:
            raise DocxTextExtractionError(f"python-docx extraction failed: {exc}") from exc
        return "\n\n".join(text for text in paragraphs if text.strip()).strip()
