from concurrent.futures import ThreadPoolExecutor

from app.database.models import STATUS_FAILED, STATUS_PROCESSING, STATUS_READY
from app.database.repositories.document_repository import DocumentRepository
from app.docx.replacement import Replacement, TokenReplacer
from app.extraction.base import BaseExtractor
from app.logging.logger import Log
from app.processor.pipeline import BatchContext, ChunkOutcome, PipelineStep
from app.storage.base import BaseBlobStore
from app.storage.keys import versioned_blob_key
from app.templates.dedup import deduplicate_placeholder_keys
from app.templates.models import Template


def progress_percent(processed: int, total: int) -> int:
    """Share of processed chunks, rounded half up to a whole percent."""
    if total <= 0:
        return 100
    return min(100, int(processed * 100 / total + 0.5))


class ExtractChunksStep(PipelineStep):
    """Extract every chunk of the batch concurrently.

    All calls run to completion; failures are recorded per chunk so the
    successful ones that precede them can still be applied.
    """

    def __init__(self, extractor: BaseExtractor, max_workers: int) -> None:
        self._extractor = extractor
        self._max_workers = max(1, max_workers)

    def run(self, context: BatchContext) -> BatchContext:
        used_keys = set(context.template.keys)
        indexes = range(context.start_chunk, context.end_chunk)
        workers = min(self._max_workers, len(indexes)) or 1
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                chunk_index: executor.submit(
                    self._extractor.extract_chunk,
                    context.chunks[chunk_index],
                    chunk_index,
                    set(used_keys),
                    context.total_chunks,
                )
                for chunk_index in indexes
            }
            outcomes = []
            for chunk_index in indexes:
                try:
                    fragment = futures[chunk_index].result()
                except Exception as exc:
                    outcomes.append(ChunkOutcome(chunk_index=chunk_index, error=exc))
                else:
                    outcomes.append(ChunkOutcome(chunk_index=chunk_index, fragment=fragment))
        context.outcomes = outcomes
        return context


class ApplyChunkResultsStep(PipelineStep):
    """Merge chunk fragments in chunk order, persisting after each one."""

    def __init__(self, doc_repo: DocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: BatchContext) -> BatchContext:
        for outcome in context.outcomes:
            if outcome.error is not None:
                raise outcome.error
            if outcome.fragment is not None:
                context.template = context.template.concat(outcome.fragment)
            context.next_chunk = outcome.chunk_index + 1
            progress = progress_percent(context.next_chunk, context.total_chunks)
            updated = self._doc_repo.update_template(
                context.document_id,
                context.template,
                processing_status=STATUS_PROCESSING,
                processing_progress=progress,
                processing_total_chunks=context.total_chunks,
                processing_next_chunk=context.next_chunk,
                processing_error=None,
            )
            if updated is not None:
                context.document = updated
            Log.info(
                "Applied chunk",
                document_id=context.document_id,
                chunk=f"{context.next_chunk}/{context.total_chunks}",
                progress=progress,
            )
        return context


class DeduplicateTemplateStep(PipelineStep):
    def __init__(self, doc_repo: DocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: BatchContext) -> BatchContext:
        if not context.is_complete:
            return context
        deduplicated = deduplicate_placeholder_keys(context.template)
        context.renamed = deduplicated != context.template
        if context.renamed:
            context.template = deduplicated
            updated = self._doc_repo.update_template(context.document_id, deduplicated)
            if updated is not None:
                context.document = updated
            Log.info("Deduplicated placeholder keys", document_id=context.document_id)
        return context


class NormalizeOriginalDocumentStep(PipelineStep):
    """Best-effort rewrite of the stored original so renamed tokens are visible.

    Every placeholder claims its own occurrence in discovery order; only
    occurrences whose ``raw`` differs from the first-seen text change.
    """

    def __init__(
        self,
        doc_repo: DocumentRepository,
        blob_store: BaseBlobStore,
        replacer: TokenReplacer,
    ) -> None:
        self._doc_repo = doc_repo
        self._blob_store = blob_store
        self._replacer = replacer

    def run(self, context: BatchContext) -> BatchContext:
        if not context.is_complete or not context.renamed:
            return context
        if not context.document.original_blob_url:
            return context
        try:
            self._normalize(context)
        except Exception as exc:
            Log.warning(
                "Unable to normalize original document",
                document_id=context.document_id,
                error=str(exc),
            )
        return context

    def _normalize(self, context: BatchContext) -> None:
        replacements = raw_token_replacements(context.template)
        if all(replacement.tokens == [replacement.value] for replacement in replacements):
            return
        original = self._blob_store.get(context.document.original_blob_url)
        normalized = self._replacer.replace(original, replacements)
        url = self._blob_store.put(
            versioned_blob_key(context.document_id, "normalized"),
            normalized,
            context.document.mime_type,
        )
        updated = self._doc_repo.update_original_blob_url(context.document_id, url)
        if updated is not None:
            context.document.original_blob_url = updated.original_blob_url
        Log.info("Normalized original document", document_id=context.document_id, url=url)


class MarkReadyStep(PipelineStep):
    def __init__(self, doc_repo: DocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: BatchContext) -> BatchContext:
        if not context.is_complete:
            return context
        updated = self._doc_repo.update_processing_state(
            context.document_id,
            processing_status=STATUS_READY,
            processing_progress=100,
            processing_total_chunks=context.total_chunks,
            processing_next_chunk=context.total_chunks,
            processing_error=None,
            plain_text=None,
        )
        if updated is not None:
            context.document = updated
        Log.info("Document ready", document_id=context.document_id)
        return context


class MarkFailedStep(PipelineStep):
    def __init__(self, doc_repo: DocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: BatchContext) -> BatchContext:
        updated = self._doc_repo.update_processing_state(
            context.document_id,
            processing_status=STATUS_FAILED,
            processing_error=context.error_message,
        )
        if updated is not None:
            context.document = updated
        Log.error(
            "Document processing failed",
            document_id=context.document_id,
            error=context.error_message,
        )
        return context


def raw_token_replacements(template: Template) -> list[Replacement]:
    return [
        Replacement(tokens=[placeholder.original_raw], value=placeholder.raw)
        for placeholder in template.placeholders
    ]
