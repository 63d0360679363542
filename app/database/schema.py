from app.database.connection import get_connection

DOCUMENTS_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS documents (
    id text PRIMARY KEY,
    filename text NOT NULL,
    mime_type text NOT NULL,
    original_blob_url text NOT NULL,
    filled_blob_url text,
    template_json jsonb NOT NULL,
    created_at timestamptz NOT NULL DEFAULT now(),
    plain_text text,
    processing_status text NOT NULL DEFAULT 'pending',
    processing_progress integer NOT NULL DEFAULT 0,
    processing_total_chunks integer NOT NULL DEFAULT 0,
    processing_next_chunk integer NOT NULL DEFAULT 0,
    processing_error text
)
"""

DOCUMENTS_STATUS_INDEX_DDL = """
CREATE INDEX IF NOT EXISTS documents_processing_status_idx
ON documents (processing_status, created_at)
"""


def ensure_documents_table() -> None:
    """Create the documents table and its status index if they are missing."""
    with get_connection() as conn:
        conn.execute(DOCUMENTS_TABLE_DDL)
        conn.execute(DOCUMENTS_STATUS_INDEX_DDL)
        conn.commit()
