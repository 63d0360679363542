import re

DEFAULT_MAX_CHUNK_LENGTH = 5000
PARAGRAPH_SEPARATOR = "\n\n"

_BLANK_LINE = re.compile(r"\n[ \t]*\n")


def split_paragraphs(text: str) -> list[str]:
    """Split on blank lines, dropping whitespace-only paragraphs."""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return [
        paragraph.strip("\n")
        for paragraph in _BLANK_LINE.split(normalized)
        if paragraph.strip()
    ]


def chunk_text(text: str, max_chunk_length: int = DEFAULT_MAX_CHUNK_LENGTH) -> list[str]:
    """Pack paragraphs greedily into chunks of at most ``max_chunk_length`` chars.

    A paragraph is only split when it alone exceeds the limit. The result is
    deterministic; chunk indexes stay stable across reprocessing.
    """
    if max_chunk_length < 1:
        raise ValueError("max_chunk_length must be a positive integer")

    chunks: list[str] = []
    current: list[str] = []
    current_length = 0

    for paragraph in split_paragraphs(text):
        if len(paragraph) > max_chunk_length:
            if current:
                chunks.append(PARAGRAPH_SEPARATOR.join(current))
                current, current_length = [], 0
            chunks.extend(_hard_split(paragraph, max_chunk_length))
            continue

        added = len(paragraph) + (len(PARAGRAPH_SEPARATOR) if current else 0)
        if current and current_length + added > max_chunk_length:
            chunks.append(PARAGRAPH_SEPARATOR.join(current))
            current, current_length = [], 0
            added = len(paragraph)
        current.append(paragraph)
        current_length += added

    if current:
        chunks.append(PARAGRAPH_SEPARATOR.join(current))
    return chunks


def _hard_split(paragraph: str, size: int) -> list[str]:
    pieces = (paragraph[start : start + size] for start in range(0, len(paragraph), size))
    return [piece for piece in pieces if piece.strip()]
