import io
from collections.abc import Callable
from dataclasses import replace
from typing import Any

import docx
import pytest

from app.database.models import ACTIVE_STATUSES, DocumentRecord, strip_private_fields
from app.database.repositories.document_repository import PROCESSING_FIELDS
from app.storage.base import BaseBlobStore
from app.storage.exceptions import BlobNotFoundError
from app.templates.models import Template

Paragraph = str | list[str]


def _add_paragraph(container: Any, paragraph: Paragraph) -> None:
    runs = [paragraph] if isinstance(paragraph, str) else paragraph
    target = container.add_paragraph()
    for text in runs:
        target.add_run(text)


def build_docx(
    paragraphs: list[Paragraph],
    table: list[list[str]] | None = None,
    header: list[Paragraph] | None = None,
) -> bytes:
    document = docx.Document()
    for paragraph in paragraphs:
        _add_paragraph(document, paragraph)
    if table:
        grid = document.add_table(rows=len(table), cols=len(table[0]))
        for row_index, row in enumerate(table):
            for col_index, text in enumerate(row):
                grid.cell(row_index, col_index).text = text
    if header:
        section_header = document.sections[0].header
        section_header.is_linked_to_previous = False
        for paragraph in header:
            _add_paragraph(section_header, paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def read_docx_text(data: bytes) -> str:
    document = docx.Document(io.BytesIO(data))
    parts = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            parts.extend(cell.text for cell in row.cells)
    for section in document.sections:
        parts.extend(paragraph.text for paragraph in section.header.paragraphs)
    return "\n".join(parts)


@pytest.fixture()
def docx_builder() -> Callable[..., bytes]:
    return build_docx


@pytest.fixture()
def docx_reader() -> Callable[[bytes], str]:
    return read_docx_text


class InMemoryDocumentRepository:
    """Dictionary-backed stand-in for DocumentRepository."""

    def __init__(self) -> None:
        self.rows: dict[str, DocumentRecord] = {}
        self.template_writes: list[tuple[str, Template, dict[str, Any]]] = []
        self.state_writes: list[tuple[str, dict[str, Any]]] = []

    def get(self, document_id: str, include_plain_text: bool = False) -> DocumentRecord | None:
        record = self.rows.get(document_id)
        if record is None:
            return None
        record = replace(record)
        return record if include_plain_text else strip_private_fields(record)

    def insert(self, document: DocumentRecord) -> DocumentRecord:
        self.rows[document.id] = replace(document)
        return replace(document)

    def update_template(
        self, document_id: str, template: Template, **fields: Any
    ) -> DocumentRecord | None:
        self._check(fields)
        self.template_writes.append((document_id, template, dict(fields)))
        return self._update(document_id, template=template, **fields)

    def update_processing_state(self, document_id: str, **fields: Any) -> DocumentRecord | None:
        self._check({k: v for k, v in fields.items() if k != "template"})
        self.state_writes.append((document_id, dict(fields)))
        return self._update(document_id, **fields)

    def update_filled_blob_url(self, document_id: str, url: str) -> DocumentRecord | None:
        record = self._update(document_id, filled_blob_url=url)
        return strip_private_fields(record) if record is not None else None

    def update_original_blob_url(self, document_id: str, url: str) -> DocumentRecord | None:
        record = self._update(document_id, original_blob_url=url)
        return strip_private_fields(record) if record is not None else None

    def find_needing_processing(self, limit: int = 1) -> list[DocumentRecord]:
        active = [r for r in self.rows.values() if r.processing_status in ACTIVE_STATUSES]
        return [strip_private_fields(r) for r in active[: max(limit, 1)]]

    def _update(self, document_id: str, **fields: Any) -> DocumentRecord | None:
        record = self.rows.get(document_id)
        if record is None:
            return None
        updated = replace(record, **fields)
        self.rows[document_id] = updated
        return replace(updated)

    @staticmethod
    def _check(fields: dict[str, Any]) -> None:
        unknown = set(fields) - PROCESSING_FIELDS
        if unknown:
            raise ValueError(f"Unknown document fields: {sorted(unknown)}")


class InMemoryBlobStore(BaseBlobStore):
    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.keys: list[str] = []

    def put(self, key: str, data: bytes, content_type: str) -> str:
        url = f"memory://{key}"
        self.blobs[url] = data
        self.keys.append(key)
        return url

    def get(self, url: str) -> bytes:
        if url not in self.blobs:
            raise BlobNotFoundError(f"Blob not found: {url}")
        return self.blobs[url]


@pytest.fixture()
def doc_repo() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture()
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()
