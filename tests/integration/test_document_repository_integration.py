import uuid

import pytest

from app.database.models import DocumentRecord
from app.database.repositories.document_repository import DocumentRepository
from app.templates.models import Placeholder, Template


def _insert(repo: DocumentRepository, cleanup: list[str], **fields: object) -> DocumentRecord:
    record = DocumentRecord(
        id=str(uuid.uuid4()),
        filename="nda.docx",
        mime_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        original_blob_url="file:///tmp/nda.docx",
        plain_text="Party [PARTY]",
        processing_total_chunks=1,
    )
    for name, value in fields.items():
        setattr(record, name, value)
    cleanup.append(record.id)
    return repo.insert(record)


@pytest.mark.integration
class TestDocumentRepository:
    def test_insert_and_get_round_trip(self, integration_cleanup: list[str]) -> None:
        repo = DocumentRepository()
        inserted = _insert(repo, integration_cleanup)

        loaded = repo.get(inserted.id, include_plain_text=True)

        assert loaded is not None
        assert loaded.plain_text == "Party [PARTY]"
        assert loaded.processing_status == "pending"
        assert loaded.created_at is not None
        assert repo.get(inserted.id).plain_text is None  # type: ignore[union-attr]

    def test_update_template_with_progress(self, integration_cleanup: list[str]) -> None:
        repo = DocumentRepository()
        inserted = _insert(repo, integration_cleanup)
        template = Template(placeholders=[Placeholder(key="party", raw="[PARTY]")])

        updated = repo.update_template(
            inserted.id,
            template,
            processing_status="processing",
            processing_next_chunk=1,
            processing_progress=100,
        )

        assert updated is not None
        assert updated.template.keys == ["party"]
        assert updated.processing_next_chunk == 1

    def test_find_needing_processing_skips_ready(self, integration_cleanup: list[str]) -> None:
        repo = DocumentRepository()
        pending = _insert(repo, integration_cleanup)
        ready = _insert(repo, integration_cleanup, processing_status="ready", plain_text=None)

        found = {document.id for document in repo.find_needing_processing(limit=1000)}

        assert pending.id in found
        assert ready.id not in found

    def test_update_unknown_document(self, integration_pool: None) -> None:
        assert DocumentRepository().update_filled_blob_url(str(uuid.uuid4()), "x") is None
