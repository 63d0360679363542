from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest

from app.database.models import DocumentRecord
from app.docx.exceptions import DocxTextExtractionError
from app.docx.filler import DOCX_MIME_TYPE
from app.documents.service import DocumentService, sanitize_updates
from app.processor.exceptions import (
    DocumentNotFoundError,
    IncompleteTemplateError,
    MissingInputError,
    PlaceholderValidationError,
    TemplateNotReadyError,
    UnsupportedDocumentTypeError,
)
from app.processor.models import BatchResult
from app.templates.models import Placeholder, Template


def _make_service(doc_repo: Any, blob_store: Any, **kwargs: Any) -> DocumentService:
    return DocumentService(
        doc_repo=doc_repo,
        blob_store=blob_store,
        processor=kwargs.pop("processor", MagicMock()),
        max_chunk_length=50,
        **kwargs,
    )


def _seed_ready(doc_repo: Any, blob_store: Any, data: bytes, **fields: Any) -> DocumentRecord:
    url = blob_store.put("documents/doc-1/nda.docx", data, DOCX_MIME_TYPE)
    record = DocumentRecord(
        id="doc-1",
        filename="nda.docx",
        mime_type=DOCX_MIME_TYPE,
        original_blob_url=url,
        processing_status="ready",
        processing_progress=100,
        template=Template(
            placeholders=[
                Placeholder(key="party", raw="[PARTY]"),
                Placeholder(key="note", raw="[NOTE]", required=False),
            ]
        ),
    )
    for name, value in fields.items():
        setattr(record, name, value)
    return doc_repo.insert(record)


class TestSanitizeUpdates:
    def test_keeps_trimmed_strings(self) -> None:
        assert sanitize_updates({"a": " x ", "b": "", "c": 3, "": "y"}) == {"a": "x"}

    def test_none(self) -> None:
        assert sanitize_updates(None) == {}


class TestUpload:
    def test_queues_document_for_processing(
        self, doc_repo: Any, blob_store: Any, docx_builder: Callable[..., bytes]
    ) -> None:
        data = docx_builder(["Party [PARTY] signs.", "Date [DATE]."] * 3)
        document = _make_service(doc_repo, blob_store).upload("../nda.docx", DOCX_MIME_TYPE, data)

        row = doc_repo.rows[document.id]
        assert row.processing_status == "pending"
        assert row.processing_total_chunks > 1
        assert row.plain_text is not None and "[PARTY]" in row.plain_text
        assert document.plain_text is None
        assert blob_store.keys == [f"documents/{document.id}/nda.docx"]
        assert row.filename == "nda.docx"

    def test_empty_document_is_ready(
        self, doc_repo: Any, blob_store: Any, docx_builder: Callable[..., bytes]
    ) -> None:
        document = _make_service(doc_repo, blob_store).upload("blank.docx", DOCX_MIME_TYPE, docx_builder([]))
        row = doc_repo.rows[document.id]
        assert row.processing_status == "ready"
        assert row.processing_progress == 100
        assert row.plain_text is None
        assert row.template == Template()

    def test_rejects_missing_input(self, doc_repo: Any, blob_store: Any) -> None:
        service = _make_service(doc_repo, blob_store)
        with pytest.raises(MissingInputError):
            service.upload(None, DOCX_MIME_TYPE, b"data")
        with pytest.raises(MissingInputError):
            service.upload("a.docx", DOCX_MIME_TYPE, b"")

    def test_rejects_other_types(self, doc_repo: Any, blob_store: Any) -> None:
        with pytest.raises(UnsupportedDocumentTypeError):
            _make_service(doc_repo, blob_store).upload("a.pdf", "application/pdf", b"%PDF")
        assert blob_store.keys == []

    def test_unreadable_document_stores_nothing(self, doc_repo: Any, blob_store: Any) -> None:
        with pytest.raises(DocxTextExtractionError):
            _make_service(doc_repo, blob_store).upload("a.docx", DOCX_MIME_TYPE, b"not a docx")
        assert blob_store.keys == []
        assert doc_repo.rows == {}


class TestUpdatePlaceholders:
    def test_persists_values_and_regenerates_preview(
        self,
        doc_repo: Any,
        blob_store: Any,
        docx_builder: Callable[..., bytes],
        docx_reader: Callable[[bytes], str],
    ) -> None:
        _seed_ready(doc_repo, blob_store, docx_builder(["Signed by [PARTY]"]))
        document = _make_service(doc_repo, blob_store).update_placeholders("doc-1", {"party": " Acme "})

        assert doc_repo.rows["doc-1"].template.placeholders[0].value == "Acme"
        assert document.filled_blob_url is not None
        assert "Signed by Acme" in docx_reader(blob_store.get(document.filled_blob_url))

    def test_rejects_empty_payload(self, doc_repo: Any, blob_store: Any) -> None:
        with pytest.raises(PlaceholderValidationError):
            _make_service(doc_repo, blob_store).update_placeholders("doc-1", {"party": "  "})

    def test_rejects_unknown_keys_before_writing(self, doc_repo: Any, blob_store: Any) -> None:
        _seed_ready(doc_repo, blob_store, b"")
        with pytest.raises(PlaceholderValidationError, match="ghost"):
            _make_service(doc_repo, blob_store).update_placeholders(
                "doc-1", {"party": "Acme", "ghost": "boo"}
            )
        assert doc_repo.template_writes == []

    def test_missing_document(self, doc_repo: Any, blob_store: Any) -> None:
        with pytest.raises(DocumentNotFoundError):
            _make_service(doc_repo, blob_store).update_placeholders("nope", {"a": "b"})

    def test_preview_failure_keeps_values(self, doc_repo: Any, blob_store: Any) -> None:
        _seed_ready(doc_repo, blob_store, b"")
        regenerator = MagicMock()
        regenerator.regenerate_preview.side_effect = RuntimeError("render failed")
        service = _make_service(doc_repo, blob_store, regenerator=regenerator)

        document = service.update_placeholders("doc-1", {"party": "Acme"})

        assert document.template.placeholders[0].value == "Acme"
        assert doc_repo.rows["doc-1"].template.placeholders[0].value == "Acme"
        assert document.filled_blob_url is None


class TestGenerate:
    def test_renders_filled_document(
        self,
        doc_repo: Any,
        blob_store: Any,
        docx_builder: Callable[..., bytes],
        docx_reader: Callable[[bytes], str],
    ) -> None:
        _seed_ready(
            doc_repo,
            blob_store,
            docx_builder(["Signed by [PARTY]"]),
            template=Template(placeholders=[Placeholder(key="party", raw="[PARTY]", value="Acme")]),
        )
        document = _make_service(doc_repo, blob_store).generate("doc-1")
        assert blob_store.keys[-1].startswith("documents/doc-1/filled-")
        assert document.filled_blob_url is not None
        assert "Signed by Acme" in docx_reader(blob_store.get(document.filled_blob_url))

    def test_requires_ready(self, doc_repo: Any, blob_store: Any) -> None:
        _seed_ready(doc_repo, blob_store, b"", processing_status="processing")
        with pytest.raises(TemplateNotReadyError):
            _make_service(doc_repo, blob_store).generate("doc-1")

    def test_requires_complete_template(self, doc_repo: Any, blob_store: Any) -> None:
        _seed_ready(doc_repo, blob_store, b"")
        with pytest.raises(IncompleteTemplateError):
            _make_service(doc_repo, blob_store).generate("doc-1")


class TestProcess:
    def test_strips_plain_text_from_result(self, doc_repo: Any, blob_store: Any) -> None:
        processor = MagicMock()
        processor.process_next_batch.return_value = BatchResult(
            status="processing",
            document=DocumentRecord(id="d", filename="f", mime_type="m", original_blob_url="u", plain_text="secret"),
        )
        result = _make_service(doc_repo, blob_store, processor=processor).process("d", 2)
        processor.process_next_batch.assert_called_once_with("d", 2)
        assert result.status == "processing"
        assert result.document is not None and result.document.plain_text is None
