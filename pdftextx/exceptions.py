"""
Custom exceptions for pdftextx.

Load-time failures (header, cross-reference chain, page tree) make the whole
document unusable.  Per-page failures are raised from the decode pipeline and
leave the rest of the document readable.
"""

from __future__ import annotations


class PDFTextError(Exception):
    """Base exception for all pdftextx errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown PDF text extraction error occurred."


class OutOfBoundsError(PDFTextError):
    """Raised when a cursor is moved outside the document byte region."""

    @property
    def default_message(self) -> str:
        return "Cursor moved outside the document."


class MalformedHeaderError(PDFTextError):
    """Raised when the ``%PDF-<major>.<minor>`` header cannot be read."""

    @property
    def default_message(self) -> str:
        return "Missing or malformed version header."


class MalformedXrefError(PDFTextError):
    """Raised when a cross-reference table or its trailer is malformed."""

    @property
    def default_message(self) -> str:
        return "Malformed cross-reference table."


class MalformedObjectError(PDFTextError):
    """Raised when an indirect object does not have the expected structure."""

    @property
    def default_message(self) -> str:
        return "Malformed object."


class PageTreeDepthError(MalformedObjectError):
    """Raised when the page tree nests deeper than the configured limit."""

    @property
    def default_message(self) -> str:
        return "Page tree is nested too deeply."


class ObjectNotFoundError(PDFTextError):
    """Raised when no cross-reference table owns an object id."""

    def __init__(self, object_id: int, message: str = "") -> None:
        self.object_id = object_id
        super().__init__(message or f"Object {object_id} is not in any cross-reference table.")


class PageNotFoundError(PDFTextError):
    """Raised when a requested page number is not in the page list."""

    def __init__(self, page_number: int, page_count: int) -> None:
        self.page_number = page_number
        self.page_count = page_count
        super().__init__(f"Page {page_number} not found (document has {page_count} pages).")


class UnsupportedFilterError(PDFTextError):
    """Raised when a content stream uses a filter other than FlateDecode."""

    def __init__(self, filter_name: str) -> None:
        self.filter_name = filter_name
        super().__init__(f"Unsupported stream filter: {filter_name}")


class DecompressionFailedError(PDFTextError):
    """Raised when the decompressor reports corrupt data or runs out of memory."""

    @property
    def default_message(self) -> str:
        return "Content stream decompression failed."


class OperandStackOverflowError(PDFTextError):
    """Raised when a content stream pushes more operands than the stack holds."""

    @property
    def default_message(self) -> str:
        return "Operand stack overflow."


class ConsumerProtocolError(PDFTextError):
    """Raised when a consumer callback reports an impossible buffer length."""

    @property
    def default_message(self) -> str:
        return "Consumer callback returned an invalid buffer length."
