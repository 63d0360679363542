from app.database.models import DocumentRecord
from app.logging.logger import Log
from app.processor.models import BatchResult
from app.processor.processor import DocumentProcessor


class BatchRunner:
    """Advance one document by one batch and report the outcome."""

    def __init__(self, processor: DocumentProcessor) -> None:
        self._processor = processor

    def run(self, document: DocumentRecord) -> BatchResult | None:
        """Process the next batch; unexpected errors are logged, not raised."""
        Log.info(
            "Running batch",
            document_id=document.id,
            next_chunk=document.processing_next_chunk,
            total=document.processing_total_chunks,
        )
        try:
            result = self._processor.process_next_batch(document.id)
        except Exception as exc:
            Log.exception("Batch crashed", document_id=document.id, error=str(exc))
            return None

        if result.status == "failed":
            Log.warning("Batch failed", document_id=document.id, error=result.error)
        else:
            progress = result.document.processing_progress if result.document else None
            Log.info("Batch finished", document_id=document.id, status=result.status, progress=progress)
        return result
