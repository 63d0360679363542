import argparse
from pathlib import Path

from app.config.settings import Settings
from app.database.connection import close_pool, init_pool
from app.database.repositories.document_repository import DocumentRepository
from app.database.schema import ensure_documents_table
from app.docx.filler import DOCX_MIME_TYPE
from app.documents.service import DocumentService
from app.logging.logger import Log
from app.processor.processor import build_processor
from app.storage.factory import BlobStoreFactory
from app.templates.operations import build_placeholder_summary, completion_ratio
from app.worker.job_runner import BatchRunner
from app.worker.worker import Worker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docfill-worker")
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("worker", help="run the polling worker (default)")

    upload = commands.add_parser("upload", help="upload a .docx template")
    upload.add_argument("path", type=Path)

    process = commands.add_parser("process", help="process the next batch of a document")
    process.add_argument("document_id")
    process.add_argument("--batch-size", type=int, default=None)

    show = commands.add_parser("show", help="print a document's placeholders")
    show.add_argument("document_id")

    fill = commands.add_parser("fill", help="set placeholder values (key=value)")
    fill.add_argument("document_id")
    fill.add_argument("assignments", nargs="+")

    generate = commands.add_parser("generate", help="render the filled document")
    generate.add_argument("document_id")
    return parser


def parse_assignments(assignments: list[str]) -> dict[str, str]:
    updates: dict[str, str] = {}
    for assignment in assignments:
        key, separator, value = assignment.partition("=")
        if not separator:
            raise ValueError(f"Expected key=value, got '{assignment}'")
        updates[key.strip()] = value
    return updates


def run_command(args: argparse.Namespace, settings: Settings) -> None:
    doc_repo = DocumentRepository()
    blob_store = BlobStoreFactory.create(settings)
    processor = build_processor(settings, doc_repo=doc_repo, blob_store=blob_store)

    if args.command in (None, "worker"):
        worker = Worker(doc_repo, BatchRunner(processor), settings)
        worker.run()
        return

    service = DocumentService(
        doc_repo=doc_repo,
        blob_store=blob_store,
        processor=processor,
        max_chunk_length=settings.max_chunk_length,
    )
    if args.command == "upload":
        document = service.upload(args.path.name, DOCX_MIME_TYPE, args.path.read_bytes())
        print(f"{document.id} {document.processing_status}")
    elif args.command == "process":
        result = service.process(args.document_id, args.batch_size)
        progress = result.document.processing_progress if result.document else 0
        print(f"{result.status} {progress}% {result.error or ''}".rstrip())
    elif args.command == "show":
        document = service.get(args.document_id)
        print(f"{document.filename} [{document.processing_status}] "
              f"{completion_ratio(document.template)}% complete")
        print(build_placeholder_summary(document.template))
    elif args.command == "fill":
        document = service.update_placeholders(args.document_id, parse_assignments(args.assignments))
        print(document.filled_blob_url or "")
    elif args.command == "generate":
        document = service.generate(args.document_id)
        print(document.filled_blob_url)


def main(argv: list[str] | None = None) -> None:
    """Entry point: settings -> logging -> pool -> schema -> command."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        ensure_documents_table()
        run_command(args, settings)
    finally:
        close_pool()


if __name__ == "__main__":
    main()
