class DocxError(Exception):
    """Base exception for DOCX reading and rendering."""


class DocxTextExtractionError(DocxError):
    """Raised when plain text cannot be read from a DOCX file."""


class DocxRenderError(DocxError):
    """Raised when placeholder tokens cannot be substituted into a DOCX file."""


class NoReplacementsAppliedError(DocxRenderError):
    """Raised when none of the placeholder tokens could be located."""
