from app.database.models import DocumentRecord
from app.database.repositories.document_repository import DocumentRepository
from app.docx.filler import DocxFiller, build_replacements
from app.logging.logger import Log
from app.storage.base import BaseBlobStore
from app.storage.keys import versioned_blob_key
from app.templates.models import Template


class PreviewRegenerator:
    """Renders a filled preview from the original upload.

    Every call reads the untouched original, so earlier previews never feed
    into later ones. Errors propagate; callers decide whether they are fatal.
    """

    def __init__(
        self,
        doc_repo: DocumentRepository,
        blob_store: BaseBlobStore,
        filler: DocxFiller | None = None,
    ) -> None:
        self._doc_repo = doc_repo
        self._blob_store = blob_store
        self._filler = filler or DocxFiller()

    def regenerate_preview(
        self, document: DocumentRecord, template: Template
    ) -> DocumentRecord | None:
        if not document.original_blob_url:
            return None

        original = self._blob_store.get(document.original_blob_url)
        replacements = build_replacements(template)
        filled = self._filler.fill(original, replacements)
        url = self._blob_store.put(
            versioned_blob_key(document.id, "preview"),
            filled,
            document.mime_type,
        )
        Log.info(
            "Regenerated preview",
            document_id=document.id,
            replacements=sum(not r.is_claim for r in replacements),
        )
        return self._doc_repo.update_filled_blob_url(document.id, url)
