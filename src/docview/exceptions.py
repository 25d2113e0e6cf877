"""
Exception classes for docview.

All docview exceptions inherit from DocViewError, making it easy to catch
every library error in one place.

Malformed line geometry has no exception: bad boxes are dropped from
hit-testing and logged.
"""


class DocViewError(Exception):
    """Base exception for all docview errors."""

    pass


class ConfigurationError(DocViewError):
    """Raised for invalid configuration."""

    pass


class DocumentFetchError(DocViewError):
    """Raised when a document's transcription data cannot be loaded."""

    pass


class PageKeyError(DocViewError):
    """
    Raised when a page key carries no recoverable page number.

    Example:
        >>> require_page_number("cover")
        PageKeyError: Bad page key: cover
    """

    pass


class PageOutOfRangeError(DocViewError):
    """Raised when a page ordinal falls outside the rendered document."""

    def __init__(self, page_number: int, page_count: int):
        self.page_number = page_number
        self.page_count = page_count
        super().__init__(
            f"Page {page_number} out of range (document has {page_count})"
        )


class RenderError(DocViewError):
    """Raised when rasterizing a page fails for a reason other than cancellation."""

    pass


class RenderCancelled(DocViewError):
    """
    Raised by a raster source when an in-flight render was cancelled.

    The render pipeline treats this as a non-error and discards the result.
    """

    pass


class SubmissionError(DocViewError):
    """
    Raised when a suggestion or vote is rejected before reaching the store.

    The message is meant to be shown to the user as-is.
    """

    pass


class NotSignedInError(SubmissionError):
    """Raised when a signed-out user tries to submit or vote."""

    pass


class EmptySuggestionError(SubmissionError):
    """Raised when a suggestion is blank after whitespace normalization."""

    pass


class DuplicateTranscriptionError(SubmissionError):
    """Raised when a suggestion matches the current transcription."""

    pass


class StoreError(DocViewError):
    """Raised by store implementations when a backend call fails."""

    pass
