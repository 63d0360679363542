"""Run-level placeholder replacement through the python-docx object model.

All runs in body paragraphs, tables, headers and footers are concatenated into
one text index (paragraphs separated by a newline). Each replacement claims the
first unconsumed occurrence of its first matching token, searching forward from
the previous match before wrapping to the start. Matches may span several runs;
the first run receives the value and keeps the formatting of the placeholder.
"""

import bisect
import io
from dataclasses import dataclass

import docx
from docx.text.run import Run

from app.docx.exceptions import DocxRenderError, NoReplacementsAppliedError
from app.docx.paragraphs import iter_paragraphs
from app.docx.replacement import Replacement, TokenReplacer

PARAGRAPH_BREAK = "\n"


@dataclass(slots=True)
class _Segment:
    run: Run
    start: int
    end: int


@dataclass(slots=True)
class _Operation:
    start: int
    end: int
    value: str


class TextIndex:
    """Flattened document text with a mapping back to the runs it came from."""

    def __init__(self, segments: list[_Segment], text: str) -> None:
        self.segments = segments
        self.text = text
        self._starts = [segment.start for segment in segments]

    @classmethod
    def build(cls, document: object) -> "TextIndex":
        segments: list[_Segment] = []
        parts: list[str] = []
        offset = 0
        for paragraph_number, paragraph in enumerate(
            iter_paragraphs(document, include_headers=True)  # type: ignore[arg-type]
        ):
            if paragraph_number > 0:
                parts.append(PARAGRAPH_BREAK)
                offset += len(PARAGRAPH_BREAK)
            for run in paragraph.runs:
                text = run.text
                if not text:
                    continue
                segments.append(_Segment(run=run, start=offset, end=offset + len(text)))
                parts.append(text)
                offset += len(text)
        return cls(segments, "".join(parts))

    def locate_start(self, position: int) -> tuple[int, int] | None:
        """(segment index, offset) of the character at ``position``."""
        index = bisect.bisect_right(self._starts, position) - 1
        if index < 0:
            return None
        segment = self.segments[index]
        if not segment.start <= position < segment.end:
            return None
        return index, position - segment.start

    def locate_end(self, position: int) -> tuple[int, int] | None:
        """(segment index, offset) just past the character before ``position``."""
        index = bisect.bisect_left(self._starts, position) - 1
        if index < 0:
            return None
        segment = self.segments[index]
        if not segment.start < position <= segment.end:
            return None
        return index, position - segment.start


def find_next_match(
    text: str,
    tokens: list[str],
    consumed: list[tuple[int, int]],
    min_start: int,
) -> tuple[int, int] | None:
    """First occurrence at or after ``min_start`` of any token, in token order,
    that does not overlap an already consumed range."""
    for token in tokens:
        if not token:
            continue
        index = text.find(token, min_start)
        while index != -1:
            candidate = (index, index + len(token))
            if not _overlaps(consumed, candidate):
                return candidate
            index = text.find(token, index + 1)
    return None


def _overlaps(ranges: list[tuple[int, int]], candidate: tuple[int, int]) -> bool:
    start, end = candidate
    return any(start < range_end and end > range_start for range_start, range_end in ranges)


class StructuralReplacer(TokenReplacer):
    """Replaces tokens run by run, leaving surrounding formatting untouched."""

    def replace(self, data: bytes, replacements: list[Replacement]) -> bytes:
        try:
            document = docx.Document(io.BytesIO(data))
        except Exception as exc:
            raise DocxRenderError(f"Unable to open DOCX: {exc}") from exc

        index = TextIndex.build(document)
        operations = self._plan(index, replacements)
        if not operations:
            raise NoReplacementsAppliedError("No placeholder tokens found in document runs")

        for operation in sorted(operations, key=lambda op: op.start, reverse=True):
            self._apply(index, operation)

        buffer = io.BytesIO()
        try:
            document.save(buffer)
        except Exception as exc:
            raise DocxRenderError(f"Unable to save DOCX: {exc}") from exc
        return buffer.getvalue()

    @staticmethod
    def _plan(index: TextIndex, replacements: list[Replacement]) -> list[_Operation]:
        operations: list[_Operation] = []
        consumed: list[tuple[int, int]] = []
        cursor = 0
        for replacement in replacements:
            match = find_next_match(index.text, replacement.tokens, consumed, cursor)
            if match is None:
                match = find_next_match(index.text, replacement.tokens, consumed, 0)
            if match is None:
                continue
            consumed.append(match)
            cursor = max(cursor, match[1])
            start, end = match
            matched = index.text[start:end]
            if replacement.value is None:
                continue
            if PARAGRAPH_BREAK in matched or matched == replacement.value:
                continue
            if index.locate_start(start) is None or index.locate_end(end) is None:
                continue
            operations.append(_Operation(start=start, end=end, value=replacement.value))
        return operations

    @staticmethod
    def _apply(index: TextIndex, operation: _Operation) -> None:
        first = index.locate_start(operation.start)
        last = index.locate_end(operation.end)
        if first is None or last is None:
            return
        first_index, first_offset = first
        last_index, last_offset = last

        first_run = index.segments[first_index].run
        if first_index == last_index:
            text = first_run.text
            first_run.text = text[:first_offset] + operation.value + text[last_offset:]
            return

        first_run.text = first_run.text[:first_offset] + operation.value
        for segment in index.segments[first_index + 1 : last_index]:
            segment.run.text = ""
        last_run = index.segments[last_index].run
        last_run.text = last_run.text[last_offset:]
