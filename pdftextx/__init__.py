"""
pdftextx - Streaming text extraction from PDF files.

The document is mapped read-only and never parsed as a whole: objects are
located through the cross-reference chain on demand, and page content streams
are inflated block by block into a caller-owned buffer that a consumer
callback drains.

Quick Start:
    >>> from pdftextx import Document, extract_page_text
    >>> with Document.open('input.pdf') as document:
    ...     print(extract_page_text(document, 1))

Main Classes:
    - Document: Loaded document (header, xref chain, page list)
    - StreamDecodePipeline: Decodes a page through a DecodeContext
    - DecodeContext: Output buffer, consumer callback and per-page state

Data Classes:
    - PageEntry: Page number and object id of a leaf page
    - ConsumerReply: Value returned by a consumer callback
    - DecodeResult: Result of decoding one page
    - PageText / SearchMatch: Results of the extraction helpers

Exceptions:
    - PDFTextError: Base exception
    - MalformedHeaderError, MalformedXrefError, MalformedObjectError: Load failures
    - UnsupportedFilterError, DecompressionFailedError: Per-page failures

For CLI usage, use the 'pdftextx' command after installation.
"""

# Core classes
from pdftextx.document import Document
from pdftextx.decode import DecodeContext, StreamDecodePipeline
from pdftextx.text import TextOperatorDecoder, TextState

# Data types
from pdftextx.types import (
    ConsumerReply,
    CrossReferenceTable,
    DecodeResult,
    DecodeStatus,
    ObjectRange,
    PageEntry,
    XrefEntry,
)

# Exceptions
from pdftextx.exceptions import (
    PDFTextError,
    OutOfBoundsError,
    MalformedHeaderError,
    MalformedXrefError,
    MalformedObjectError,
    PageTreeDepthError,
    ObjectNotFoundError,
    PageNotFoundError,
    UnsupportedFilterError,
    DecompressionFailedError,
    OperandStackOverflowError,
    ConsumerProtocolError,
)

# Extraction helpers
from pdftextx.extract import (
    PageText,
    SearchMatch,
    extract_page_text,
    extract_title,
    iter_page_text,
    search,
)

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Main classes
    "Document",
    "DecodeContext",
    "StreamDecodePipeline",
    "TextOperatorDecoder",
    "TextState",
    # Data types
    "ConsumerReply",
    "CrossReferenceTable",
    "DecodeResult",
    "DecodeStatus",
    "ObjectRange",
    "PageEntry",
    "XrefEntry",
    "PageText",
    "SearchMatch",
    # Exceptions
    "PDFTextError",
    "OutOfBoundsError",
    "MalformedHeaderError",
    "MalformedXrefError",
    "MalformedObjectError",
    "PageTreeDepthError",
    "ObjectNotFoundError",
    "PageNotFoundError",
    "UnsupportedFilterError",
    "DecompressionFailedError",
    "OperandStackOverflowError",
    "ConsumerProtocolError",
    # Extraction helpers
    "extract_page_text",
    "extract_title",
    "iter_page_text",
    "search",
    # Version info
    "__version__",
]
