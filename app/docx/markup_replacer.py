import io
import re
import zipfile
from collections.abc import Iterator
from xml.sax.saxutils import escape

from app.docx.exceptions import DocxRenderError, NoReplacementsAppliedError
from app.docx.replacement import Replacement, TokenReplacer

DOCUMENT_XML = "word/document.xml"

# Word may split one visible token across runs, proofing marks and whitespace.
_INTERLEAVE = r"(?:\s|<[^>]*>)*"

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}

Span = tuple[int, int]


def escape_xml(value: str) -> str:
    return escape(value, _XML_ENTITIES)


def build_interleaved_pattern(token: str) -> re.Pattern[str] | None:
    chars = [re.escape(char) for char in token if not char.isspace()]
    if not chars:
        return None
    return re.compile(_INTERLEAVE.join(chars))


def _token_spans(xml: str, token: str, start: int) -> Iterator[Span]:
    """Escaped literal, raw literal, then interleaved matches at or after ``start``."""
    for literal in dict.fromkeys((escape_xml(token), token)):
        position = xml.find(literal, start)
        while position != -1:
            yield position, position + len(literal)
            position = xml.find(literal, position + 1)
    pattern = build_interleaved_pattern(escape_xml(token))
    if pattern is not None:
        for match in pattern.finditer(xml, start):
            yield match.start(), match.end()


def find_token(xml: str, tokens: list[str], claimed: list[Span], start: int = 0) -> Span | None:
    """First span of the first matching token that overlaps no claimed span."""
    for token in tokens:
        if not token:
            continue
        for span in _token_spans(xml, token, start):
            if not any(span[0] < end and span[1] > begin for begin, end in claimed):
                return span
    return None


class MarkupEditor:
    """Sequential token edits on one XML string.

    Claimed spans are kept in step with the text, so claims made before a
    substitution stay valid after it.
    """

    def __init__(self, xml: str) -> None:
        self.xml = xml
        self.claimed: list[Span] = []
        self.applied = 0
        self._cursor = 0

    def apply(self, replacement: Replacement) -> bool:
        span = find_token(self.xml, replacement.tokens, self.claimed, self._cursor)
        if span is None:
            span = find_token(self.xml, replacement.tokens, self.claimed)
        if span is None:
            return False
        if replacement.value is None:
            self.claimed.append(span)
            self._cursor = max(self._cursor, span[1])
            return False

        start, end = span
        value = escape_xml(replacement.value)
        shift = len(value) - (end - start)
        self.xml = self.xml[:start] + value + self.xml[end:]
        self.claimed = [
            (begin + shift, stop + shift) if begin >= end else (begin, stop)
            for begin, stop in self.claimed
        ]
        self.claimed.append((start, start + len(value)))
        self._cursor = start + len(value) if self._cursor <= end else self._cursor + shift
        self.applied += 1
        return True


class MarkupReplacer(TokenReplacer):
    """Rewrites ``word/document.xml`` directly with string and regex matching.

    Each replacement substitutes one occurrence only.
    """

    def replace(self, data: bytes, replacements: list[Replacement]) -> bytes:
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as source:
                entries = [(info, source.read(info.filename)) for info in source.infolist()]
        except (zipfile.BadZipFile, OSError) as exc:
            raise DocxRenderError(f"Unable to open DOCX archive: {exc}") from exc

        xml_bytes = next((content for info, content in entries if info.filename == DOCUMENT_XML), None)
        if xml_bytes is None:
            raise DocxRenderError(f"{DOCUMENT_XML} not found in template")

        editor = MarkupEditor(xml_bytes.decode("utf-8"))
        for replacement in replacements:
            editor.apply(replacement)
        if editor.applied == 0:
            raise NoReplacementsAppliedError("No placeholder tokens found in document markup")

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as target:
            for info, content in entries:
                if info.filename == DOCUMENT_XML:
                    content = editor.xml.encode("utf-8")
                target.writestr(info, content)
        return buffer.getvalue()
