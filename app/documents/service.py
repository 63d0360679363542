import uuid
from collections.abc import Mapping
from pathlib import PurePath

from app.chunking.chunker import chunk_text
from app.database.models import (
    STATUS_PENDING,
    STATUS_READY,
    DocumentRecord,
    strip_private_fields,
)
from app.database.repositories.document_repository import DocumentRepository
from app.docx.filler import DOCX_MIME_TYPE, DocxFiller
from app.docx.text_extractor import BaseTextExtractor, DocxTextExtractor
from app.logging.logger import Log
from app.preview.regeneration import PreviewRegenerator
from app.processor.exceptions import (
    DocumentNotFoundError,
    IncompleteTemplateError,
    MissingInputError,
    PlaceholderValidationError,
    TemplateNotReadyError,
    UnsupportedDocumentTypeError,
)
from app.processor.models import BatchResult
from app.processor.processor import DocumentProcessor
from app.storage.base import BaseBlobStore
from app.storage.keys import blob_key, versioned_blob_key
from app.templates.models import Template
from app.templates.operations import apply_updates, is_complete, unknown_keys


def sanitize_updates(updates: Mapping[str, object] | None) -> dict[str, str]:
    """Keep non-empty string values, trimmed."""
    if not updates:
        return {}
    sanitized: dict[str, str] = {}
    for key, value in updates.items():
        if not key or not isinstance(value, str) or not value.strip():
            continue
        sanitized[key] = value.strip()
    return sanitized


class DocumentService:
    """Entry points used by the outer surface: upload, fill, generate."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        blob_store: BaseBlobStore,
        processor: DocumentProcessor,
        max_chunk_length: int,
        text_extractor: BaseTextExtractor | None = None,
        filler: DocxFiller | None = None,
        regenerator: PreviewRegenerator | None = None,
    ) -> None:
        self._doc_repo = doc_repo
        self._blob_store = blob_store
        self._processor = processor
        self._max_chunk_length = max_chunk_length
        self._text_extractor = text_extractor or DocxTextExtractor()
        self._filler = filler or DocxFiller()
        self._regenerator = regenerator or PreviewRegenerator(doc_repo, blob_store, self._filler)

    def upload(self, filename: str | None, mime_type: str | None, content: bytes | None) -> DocumentRecord:
        """Extract the text, store the original and queue it for processing.

        Raises:
            MissingInputError: if the filename or content is missing.
            UnsupportedDocumentTypeError: if the upload is not a DOCX file.
            DocxTextExtractionError: if the text cannot be read.
        """
        name = PurePath(filename or "").name
        if not name or not content:
            raise MissingInputError("Missing file")
        if mime_type != DOCX_MIME_TYPE:
            raise UnsupportedDocumentTypeError("Only .docx files are supported.")

        plain_text = self._text_extractor.extract(content)
        total_chunks = len(chunk_text(plain_text, self._max_chunk_length))
        document_id = str(uuid.uuid4())
        url = self._blob_store.put(blob_key(document_id, name), content, mime_type)

        record = DocumentRecord(
            id=document_id,
            filename=name,
            mime_type=mime_type,
            original_blob_url=url,
            template=Template(),
        )
        if total_chunks == 0:
            record.processing_status = STATUS_READY
            record.processing_progress = 100
        else:
            record.processing_status = STATUS_PENDING
            record.plain_text = plain_text
            record.processing_total_chunks = total_chunks

        inserted = self._doc_repo.insert(record)
        Log.info(
            "Document uploaded",
            document_id=document_id,
            status=inserted.processing_status,
            chunks=total_chunks,
        )
        return strip_private_fields(inserted)

    def get(self, document_id: str) -> DocumentRecord:
        document = self._doc_repo.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    def process(self, document_id: str, batch_size: int | None = None) -> BatchResult:
        result = self._processor.process_next_batch(document_id, batch_size)
        if result.document is not None:
            result = BatchResult(
                status=result.status,
                document=strip_private_fields(result.document),
                error=result.error,
            )
        return result

    def update_placeholders(
        self, document_id: str, updates: Mapping[str, object] | None
    ) -> DocumentRecord:
        """Persist placeholder values, then refresh the preview if possible.

        Raises:
            PlaceholderValidationError: if nothing usable was supplied or a key
                is not part of the template.
            DocumentNotFoundError: if the document does not exist.
        """
        sanitized = sanitize_updates(updates)
        if not sanitized:
            raise PlaceholderValidationError("Provide at least one non-empty value.")

        document = self.get(document_id)
        unknown = unknown_keys(document.template, list(sanitized))
        if unknown:
            raise PlaceholderValidationError(f"Unknown placeholder keys: {', '.join(unknown)}")

        template = apply_updates(document.template, sanitized)
        updated = self._doc_repo.update_template(document_id, template)
        if updated is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        try:
            refreshed = self._regenerator.regenerate_preview(updated, template)
        except Exception as exc:
            Log.error("Live preview refresh failed", document_id=document_id, error=str(exc))
            refreshed = None
        return refreshed or strip_private_fields(updated)

    def generate(self, document_id: str) -> DocumentRecord:
        """Render the final filled document.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            TemplateNotReadyError: while extraction is still running.
            IncompleteTemplateError: while required values are missing.
        """
        document = self.get(document_id)
        if not document.is_ready:
            raise TemplateNotReadyError("Template is still processing. Please try again shortly.")
        if not is_complete(document.template):
            raise IncompleteTemplateError(
                "Please fill every required placeholder before generating the document."
            )

        original = self._blob_store.get(document.original_blob_url)
        filled = self._filler.fill_template(original, document.template)
        url = self._blob_store.put(
            versioned_blob_key(document.id, "filled"),
            filled,
            document.mime_type,
        )
        updated = self._doc_repo.update_filled_blob_url(document.id, url)
        Log.info("Generated filled document", document_id=document.id, url=url)
        return updated or document
