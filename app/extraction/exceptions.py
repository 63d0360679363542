class ExtractionError(Exception):
    """Raised when placeholder extraction for a chunk fails."""


class ExtractionValidationError(ExtractionError):
    """Raised when the extracted template fragment violates the schema."""


class ExtractionNetworkError(ExtractionError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
