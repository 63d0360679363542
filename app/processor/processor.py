from app.chunking.chunker import chunk_text
from app.config.settings import Settings
from app.database.models import STATUS_FAILED, STATUS_READY, DocumentRecord
from app.database.repositories.document_repository import DocumentRepository
from app.docx.structural_replacer import StructuralReplacer
from app.extraction.base import BaseExtractor
from app.extraction.factory import ExtractorFactory
from app.logging.logger import Log
from app.processor.models import BatchResult
from app.processor.pipeline import BatchContext, PipelineStep
from app.processor.steps import (
    ApplyChunkResultsStep,
    DeduplicateTemplateStep,
    ExtractChunksStep,
    MarkFailedStep,
    MarkReadyStep,
    NormalizeOriginalDocumentStep,
)
from app.storage.base import BaseBlobStore
from app.storage.factory import BlobStoreFactory

TEXT_UNAVAILABLE_MESSAGE = "Document text unavailable for processing."


class DocumentProcessor:
    """Advances a document through chunked placeholder extraction.

    Each call to ``process_next_batch`` handles at most one batch of chunks and
    persists progress after every chunk, so the job can be resumed by any
    worker simply by calling it again. Documents already ``ready`` are left
    untouched.
    """

    def __init__(
        self,
        doc_repo: DocumentRepository,
        extractor: BaseExtractor,
        blob_store: BaseBlobStore,
        max_chunk_length: int,
        default_batch_size: int,
    ) -> None:
        self._doc_repo = doc_repo
        self._max_chunk_length = max_chunk_length
        self._default_batch_size = max(1, default_batch_size)
        self._extract_step = ExtractChunksStep(extractor, max_workers=self._default_batch_size)
        self._batch_steps: list[PipelineStep] = [
            ApplyChunkResultsStep(doc_repo),
            DeduplicateTemplateStep(doc_repo),
            NormalizeOriginalDocumentStep(doc_repo, blob_store, StructuralReplacer()),
            MarkReadyStep(doc_repo),
        ]
        self._failure_step = MarkFailedStep(doc_repo)

    def process_next_batch(self, document_id: str, batch_size: int | None = None) -> BatchResult:
        document = self._doc_repo.get(document_id, include_plain_text=True)
        if document is None:
            return BatchResult(status="missing")

        if document.processing_status == STATUS_READY:
            return BatchResult(status="ready", document=document)

        if not document.plain_text:
            return self._fail_without_text(document)

        chunks = chunk_text(document.plain_text, self._max_chunk_length)
        total = len(chunks)
        if total == 0 or document.processing_next_chunk >= total:
            return self._finish_without_work(document, total)

        start = max(0, document.processing_next_chunk)
        size = max(1, batch_size if batch_size is not None else self._default_batch_size)
        end = min(total, start + size)
        Log.info(
            "Processing batch",
            document_id=document_id,
            chunks=f"{start + 1}-{end}/{total}",
        )

        context = BatchContext(
            document_id=document_id,
            document=document,
            chunks=chunks,
            start_chunk=start,
            end_chunk=end,
            template=document.template,
            next_chunk=start,
        )
        try:
            context = self._extract_step.run(context)
            for step in self._batch_steps:
                context = step.run(context)
        except Exception as exc:
            context.error_message = str(exc) or exc.__class__.__name__
            context = self._failure_step.run(context)
            return BatchResult(
                status="failed", document=context.document, error=context.error_message
            )

        status = "ready" if context.is_complete else "processing"
        return BatchResult(status=status, document=context.document)

    def _fail_without_text(self, document: DocumentRecord) -> BatchResult:
        updated = self._doc_repo.update_processing_state(
            document.id,
            processing_status=STATUS_FAILED,
            processing_error=TEXT_UNAVAILABLE_MESSAGE,
        )
        Log.error(TEXT_UNAVAILABLE_MESSAGE, document_id=document.id)
        return BatchResult(
            status="failed",
            document=updated or document,
            error=TEXT_UNAVAILABLE_MESSAGE,
        )

    def _finish_without_work(self, document: DocumentRecord, total: int) -> BatchResult:
        updated = self._doc_repo.update_processing_state(
            document.id,
            processing_status=STATUS_READY,
            processing_progress=100,
            processing_total_chunks=total,
            processing_next_chunk=total,
            processing_error=None,
            plain_text=None,
        )
        Log.info("Document ready, no chunks left", document_id=document.id, total=total)
        return BatchResult(status="ready", document=updated or document)


def build_processor(
    settings: Settings,
    doc_repo: DocumentRepository | None = None,
    blob_store: BaseBlobStore | None = None,
) -> DocumentProcessor:
    """Build a DocumentProcessor with all required adapters."""
    return DocumentProcessor(
        doc_repo=doc_repo or DocumentRepository(),
        extractor=ExtractorFactory.create(settings),
        blob_store=blob_store or BlobStoreFactory.create(settings),
        max_chunk_length=settings.max_chunk_length,
        default_batch_size=settings.process_chunk_batch_size,
    )
