from collections.abc import Iterator

from docx.document import Document
from docx.table import Table
from docx.text.paragraph import Paragraph


def iter_paragraphs(document: Document, include_headers: bool = False) -> Iterator[Paragraph]:
    """Yield paragraphs in document order, descending into (nested) tables.

    Merged table cells are visited once. Headers and footers follow the body
    when ``include_headers`` is set.
    """
    yield from _iter_container(document)
    if not include_headers:
        return
    for section in document.sections:
        for part in (section.header, section.footer):
            if part.is_linked_to_previous:
                continue
            yield from _iter_container(part)


def _iter_container(container: object) -> Iterator[Paragraph]:
    for item in container.iter_inner_content():  # type: ignore[attr-defined]
        if isinstance(item, Paragraph):
            yield item
        elif isinstance(item, Table):
            yield from _iter_table(item)


def _iter_table(table: Table) -> Iterator[Paragraph]:
    seen: set[object] = set()
    for row in table.rows:
        for cell in row.cells:
            if cell._tc in seen:
                continue
            seen.add(cell._tc)
            yield from _iter_container(cell)
