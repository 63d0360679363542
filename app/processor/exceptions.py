class ProcessorError(Exception):
    """Base exception for document processing and placeholder operations."""


class DocumentNotFoundError(ProcessorError):
    """Raised when a document cannot be found in the database."""


class MissingInputError(ProcessorError):
    """Raised when an upload lacks a filename or content."""


class UnsupportedDocumentTypeError(ProcessorError):
    """Raised when an upload is not a DOCX document."""


class PlaceholderValidationError(ProcessorError):
    """Raised when a placeholder update payload is empty or names unknown keys."""


class TemplateNotReadyError(ProcessorError):
    """Raised when generation is requested before extraction has finished."""


class IncompleteTemplateError(ProcessorError):
    """Raised when generation is requested while required values are missing."""
