from app.docx.markup_replacer import MarkupReplacer
from app.docx.replacement import Replacement, TokenReplacer, build_match_tokens
from app.docx.structural_replacer import StructuralReplacer
from app.logging.logger import Log
from app.templates.models import Placeholder, Template

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def build_replacements(template: Template) -> list[Replacement]:
    """One entry per placeholder in discovery order.

    Placeholders without a value become claims, so every occurrence stays bound
    to its own placeholder even while other fields are still empty.
    """
    return [
        Replacement(tokens=build_match_tokens(placeholder), value=_fill_value(placeholder))
        for placeholder in template.placeholders
    ]


def _fill_value(placeholder: Placeholder) -> str | None:
    if placeholder.value is None or not placeholder.value.strip():
        return None
    return placeholder.value.strip()


class DocxFiller:
    """Fills placeholder values into DOCX bytes.

    The primary replacer keeps run formatting intact; when it raises, the
    fallback rewrites the document markup directly.
    """

    def __init__(
        self,
        primary: TokenReplacer | None = None,
        fallback: TokenReplacer | None = None,
    ) -> None:
        self._primary = primary or StructuralReplacer()
        self._fallback = fallback or MarkupReplacer()

    def fill(self, data: bytes, replacements: list[Replacement]) -> bytes:
        if all(replacement.is_claim for replacement in replacements):
            return data
        try:
            return self._primary.replace(data, replacements)
        except Exception as exc:
            Log.warning(
                "Structural replacement failed, falling back to markup replacement",
                error=str(exc),
                replacements=sum(not r.is_claim for r in replacements),
            )
        return self._fallback.replace(data, replacements)

    def fill_template(self, data: bytes, template: Template) -> bytes:
        return self.fill(data, build_replacements(template))
