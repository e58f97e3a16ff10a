class ExtractionError(Exception):
    """Base exception for all extraction-related errors."""


class UnsupportedFormatError(ExtractionError):
    """Raised when no extraction strategy exists for a file type."""


class DecodeError(ExtractionError):
    """Raised when a local decoder cannot turn a file into text."""


class OCRFailedError(ExtractionError):
    """Raised when the remote OCR service produced no text for a file."""
