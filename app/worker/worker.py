import sys
import time
from concurrent.futures import ThreadPoolExecutor

from app.config.settings import Settings
from app.database.repositories.document_repository import DocumentRepository
from app.logging.logger import Log
from app.worker.job_runner import BatchRunner


class Worker:
    """Poll loop: find documents needing work -> run one batch each -> sleep."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        batch_runner: BatchRunner,
        settings: Settings,
    ) -> None:
        self._doc_repo = doc_repo
        self._batch_runner = batch_runner
        self._settings = settings

    def run(self, max_iterations: int | None = None) -> None:
        """Main poll loop. Runs until interrupted.

        Stops after one iteration when ``worker_single_pass`` is set, or after
        ``max_iterations`` (for testing). Exits the process with status 1 once
        ``worker_max_consecutive_errors`` loop failures happen in a row.
        """
        Log.info("Worker started, polling for documents")
        iterations = 0
        consecutive_errors = 0
        try:
            while True:
                try:
                    processed = self.run_once()
                    consecutive_errors = 0
                except Exception as exc:
                    consecutive_errors += 1
                    Log.error(
                        "Worker iteration failed",
                        error=str(exc),
                        consecutive_errors=consecutive_errors,
                    )
                    if consecutive_errors >= self._settings.worker_max_consecutive_errors:
                        Log.error("Too many consecutive errors, exiting")
                        sys.exit(1)
                    time.sleep(self._settings.worker_error_delay_seconds)
                    processed = -1

                iterations += 1
                if self._settings.worker_single_pass:
                    break
                if max_iterations is not None and iterations >= max_iterations:
                    break
                if processed == 0:
                    Log.debug("No documents need processing, sleeping")
                    time.sleep(self._settings.worker_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def run_once(self) -> int:
        """Process one batch for each pending document. Returns how many were found."""
        documents = self._doc_repo.find_needing_processing(self._settings.worker_batch_limit)
        if not documents:
            return 0
        workers = max(1, min(self._settings.worker_concurrency, len(documents)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            list(executor.map(self._batch_runner.run, documents))
        return len(documents)
