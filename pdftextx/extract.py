"""High level helpers built on the consumer callback protocol.

These cover the common cases (whole-page text, grep-style search and the
"first line of the first page" title heuristic) so callers only need
:class:`~pdftextx.decode.DecodeContext` for custom streaming.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, Optional, Pattern, Union

from .constants import DEFAULT_BUFFER_SIZE, TEXT_ENCODING, TITLE_BUFFER_SIZE
from .decode import DecodeContext, StreamDecodePipeline
from .document import Document
from .exceptions import PDFTextError
from .types import ConsumerReply, DecodeResult

__all__ = [
    "PageText",
    "SearchMatch",
    "decode_page",
    "extract_page_text",
    "iter_page_text",
    "search",
    "extract_title",
]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PageText:
    """
    Text of one page.

    Attributes:
        page_number: 1-based page number
        text: Decoded text; empty when the page failed to decode
        error: The failure, if any
    """

    page_number: int
    text: str
    error: Optional[PDFTextError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class SearchMatch:
    """A line of page text matching a search pattern."""

    page_number: int
    line_number: int
    line: str


def decode_page(
    document: Document,
    page_number: int,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> tuple[bytes, DecodeResult]:
    """Decode a page into memory and return its raw text bytes with the decode result."""

    chunks: list[bytes] = []

    def collect(context: DecodeContext, used: int, final: bool) -> ConsumerReply:
        chunks.append(bytes(context.buffer[:used]))
        return ConsumerReply.proceed()

    context = DecodeContext(
        document=document,
        page_number=page_number,
        buffer=bytearray(buffer_size),
        consumer=collect,
    )
    result = StreamDecodePipeline().decode_page(context)
    return b"".join(chunks), result


def extract_page_text(
    document: Document,
    page_number: int,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> str:
    text, _ = decode_page(document, page_number, buffer_size)
    return text.decode(TEXT_ENCODING)


def iter_page_text(
    document: Document,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> Iterator[PageText]:
    """Yield the text of every page in order.

    A page that fails to decode is reported through :attr:`PageText.error`
    and the remaining pages are still processed.
    """

    for page in document.pages:
        try:
            text = extract_page_text(document, page.page_number, buffer_size)
        except PDFTextError as exc:
            LOGGER.warning("Unable to extract text from page %d: %s", page.page_number, exc)
            yield PageText(page_number=page.page_number, text="", error=exc)
            continue
        yield PageText(page_number=page.page_number, text=text)


def search(
    document: Document,
    pattern: Union[str, Pattern[str]],
    ignore_case: bool = False,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> Iterator[SearchMatch]:
    """Yield every line of page text that matches ``pattern``."""

    if isinstance(pattern, str):
        pattern = re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    for page_text in iter_page_text(document, buffer_size):
        for line_number, line in enumerate(page_text.text.splitlines(), start=1):
            if pattern.search(line):
                yield SearchMatch(page_number=page_text.page_number, line_number=line_number, line=line)


def extract_title(document: Document) -> Optional[str]:
    """Return the first line of text on page 1, or ``None`` if there is none.

    Only the first buffer's worth of text is decoded: the consumer stops the
    decode as soon as the buffer fills.
    """

    if document.page_count == 0:
        return None
    captured: list[bytes] = []

    def first_block(context: DecodeContext, used: int, final: bool) -> ConsumerReply:
        captured.append(bytes(context.buffer[:used]))
        return ConsumerReply.stop()

    context = DecodeContext(
        document=document,
        page_number=1,
        buffer=bytearray(TITLE_BUFFER_SIZE),
        consumer=first_block,
    )
    StreamDecodePipeline().decode_page(context)
    text = b"".join(captured).decode(TEXT_ENCODING)
    title = text.split("\n", 1)[0].strip()
    return title or None
