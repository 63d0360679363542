import json
from typing import Any

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from app.database.connection import get_connection
from app.database.models import ACTIVE_STATUSES, DocumentRecord, strip_private_fields
from app.templates.models import Template
from app.templates.serialization import template_from_dict, template_to_dict

PROCESSING_FIELDS: frozenset[str] = frozenset(
    {
        "processing_status",
        "processing_progress",
        "processing_total_chunks",
        "processing_next_chunk",
        "processing_error",
        "plain_text",
    }
)


class DocumentRepository:
    """Database operations for the documents table.

    Every update is a single ``UPDATE ... RETURNING *`` statement so concurrent
    callers always observe a whole row.
    """

    def get(self, document_id: str, include_plain_text: bool = False) -> DocumentRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SELECT * FROM documents WHERE id = %s LIMIT 1", (document_id,))
                row = cur.fetchone()

        if row is None:
            return None
        record = _to_record(row)
        return record if include_plain_text else strip_private_fields(record)

    def insert(self, document: DocumentRecord) -> DocumentRecord:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    INSERT INTO documents (
                        id, filename, mime_type, original_blob_url, filled_blob_url,
                        template_json, plain_text, processing_status,
                        processing_progress, processing_total_chunks,
                        processing_next_chunk, processing_error
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING *
                    """,
                    (
                        document.id,
                        document.filename,
                        document.mime_type,
                        document.original_blob_url,
                        document.filled_blob_url,
                        Jsonb(template_to_dict(document.template)),
                        document.plain_text,
                        document.processing_status,
                        document.processing_progress,
                        document.processing_total_chunks,
                        document.processing_next_chunk,
                        document.processing_error,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError(f"Insert of document {document.id} returned no row")
        return _to_record(row)

    def update_template(
        self, document_id: str, template: Template, **fields: Any
    ) -> DocumentRecord | None:
        """Replace the template and any processing fields in one statement."""
        assignments = {"template_json": Jsonb(template_to_dict(template))}
        assignments.update(_checked_fields(fields))
        return self._update(document_id, assignments)

    def update_processing_state(self, document_id: str, **fields: Any) -> DocumentRecord | None:
        """Update processing fields. With nothing to change, return the current row."""
        template = fields.pop("template", None)
        assignments = _checked_fields(fields)
        if template is not None:
            assignments["template_json"] = Jsonb(template_to_dict(template))
        if not assignments:
            return self.get(document_id, include_plain_text=True)
        return self._update(document_id, assignments)

    def update_filled_blob_url(self, document_id: str, url: str) -> DocumentRecord | None:
        record = self._update(document_id, {"filled_blob_url": url})
        return strip_private_fields(record) if record is not None else None

    def update_original_blob_url(self, document_id: str, url: str) -> DocumentRecord | None:
        record = self._update(document_id, {"original_blob_url": url})
        return strip_private_fields(record) if record is not None else None

    def find_needing_processing(
        self, limit: int = 1, include_plain_text: bool = False
    ) -> list[DocumentRecord]:
        """Oldest documents still pending or mid-processing."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT *
                    FROM documents
                    WHERE processing_status = ANY(%s)
                    ORDER BY created_at ASC
                    LIMIT %s
                    """,
                    (list(ACTIVE_STATUSES), max(limit, 1)),
                )
                rows = cur.fetchall()

        records = [_to_record(row) for row in rows]
        if include_plain_text:
            return records
        return [strip_private_fields(record) for record in records]

    def _update(self, document_id: str, assignments: dict[str, Any]) -> DocumentRecord | None:
        statement = sql.SQL("UPDATE documents SET {} WHERE id = %s RETURNING *").format(
            sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(column)) for column in assignments
            )
        )
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(statement, (*assignments.values(), document_id))
                row = cur.fetchone()
            conn.commit()

        if row is None:
            return None
        return _to_record(row)


def _checked_fields(fields: dict[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(fields) - PROCESSING_FIELDS)
    if unknown:
        raise ValueError(f"Unknown document fields: {', '.join(unknown)}")
    return dict(fields)


def _to_record(row: dict[str, Any]) -> DocumentRecord:
    template_json = row.get("template_json")
    if isinstance(template_json, str):
        template_json = json.loads(template_json)
    return DocumentRecord(
        id=row["id"],
        filename=row["filename"],
        mime_type=row["mime_type"],
        original_blob_url=row["original_blob_url"],
        filled_blob_url=row.get("filled_blob_url"),
        template=template_from_dict(template_json),
        plain_text=row.get("plain_text"),
        processing_status=row.get("processing_status") or "pending",
        processing_progress=row.get("processing_progress") or 0,
        processing_total_chunks=row.get("processing_total_chunks") or 0,
        processing_next_chunk=row.get("processing_next_chunk") or 0,
        processing_error=row.get("processing_error"),
        created_at=row.get("created_at"),
    )
