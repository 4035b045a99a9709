"""
Letter System Exceptions

Custom exceptions for layout, rendering and export errors.
"""


class LetterError(Exception):
    """Base exception for all letter system errors."""
    pass


class LayoutError(LetterError):
    """
    Raised when a layout is invalid.

    This includes unknown slot names and non-finite coordinates.
    """
    def __init__(self, message: str, slot: str = None):
        self.slot = slot
        super().__init__(message)


class MissingReferenceError(LetterError):
    """
    Raised when a draft cannot be rendered because the business
    or the recipient it points to is not resolved.
    """
    def __init__(self, message: str, reference: str = None):
        self.reference = reference
        super().__init__(message)


class ExportError(LetterError):
    """Raised when a PDF or DOCX export cannot be produced at all."""
    pass


class ImageLoadError(LetterError):
    """
    Raised when an image cannot be fetched or decoded.

    Exports catch this and degrade instead of aborting.
    """
    def __init__(self, message: str, url: str = None):
        self.url = url
        super().__init__(message)


class SaveError(LetterError):
    """
    Raised when persisting a draft fails.

    Wraps the HTTP status and server message when available.
    """
    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)
