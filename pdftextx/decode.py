"""Streaming decode of a page's content streams into a caller-owned buffer.

Compressed input is read straight from the document region in fixed-size
blocks and inflated with :mod:`zlib` one bounded output block at a time.  Each
output block goes through the text decoder before more input is requested, so
memory use does not depend on the size of the stream.  Decoded text is written
into the caller's buffer; whenever it fills up the consumer callback drains it
(or stops the decode).
"""

from __future__ import annotations

import logging
import zlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, NamedTuple

from .constants import BLOCK_SIZE, SUPPORTED_FILTER
from .cursor import ByteCursor
from .exceptions import (
    ConsumerProtocolError,
    DecompressionFailedError,
    MalformedObjectError,
    OutOfBoundsError,
    UnsupportedFilterError,
)
from .text import TextOperatorDecoder, TextState
from .types import ConsumerReply, DecodeResult, DecodeStatus, ObjectRange
from .xref import CrossReferenceResolver

if TYPE_CHECKING:
    from .document import Document

__all__ = ["Consumer", "DecodeContext", "StreamDecodePipeline", "ContentStream"]

LOGGER = logging.getLogger(__name__)

Consumer = Callable[["DecodeContext", int, bool], ConsumerReply]


@dataclass(slots=True, eq=False)
class DecodeContext:
    """
    Per-page decode state shared between the pipeline and the consumer.

    Attributes:
        document: Document the page belongs to
        page_number: 1-based page to decode
        buffer: Caller-owned output buffer; its length is the capacity
        consumer: Callback invoked as ``consumer(context, used, final)``
        user_data: Opaque value for the consumer's own use
        used: Number of valid bytes at the start of ``buffer``
        text_state: Text state of the page, reset when decoding starts
    """

    document: Document
    page_number: int
    buffer: bytearray
    consumer: Consumer
    user_data: Any = None
    used: int = 0
    text_state: TextState = field(default_factory=TextState)
    callbacks: int = 0
    bytes_written: int = 0
    stopped: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.buffer, bytearray):
            raise TypeError("Output buffer must be a bytearray")
        if len(self.buffer) == 0:
            raise ValueError("Output buffer capacity must be greater than zero")

    @property
    def capacity(self) -> int:
        return len(self.buffer)

    @property
    def text(self) -> bytes:
        """Valid bytes currently held in the buffer."""

        return bytes(self.buffer[: self.used])

    def reset(self) -> None:
        self.used = 0
        self.callbacks = 0
        self.bytes_written = 0
        self.stopped = False
        self.text_state.reset()

    def emit(self, byte: int) -> bool:
        """Append one decoded byte, draining a full buffer through the consumer first.

        Returns ``False`` once the consumer has replied ``STOP``.
        """

        if self.used >= self.capacity and not self._drain():
            return False
        self.buffer[self.used] = byte
        self.used += 1
        self.bytes_written += 1
        return True

    def finish(self) -> None:
        """Hand the remaining bytes to the consumer with the final flag set."""

        self.consumer(self, self.used, True)
        self.callbacks += 1
        self.used = 0

    def result(self) -> DecodeResult:
        return DecodeResult(
            page_number=self.page_number,
            stopped=self.stopped,
            bytes_delivered=self.bytes_written,
            callbacks=self.callbacks,
        )

    def _drain(self) -> bool:
        reply = self.consumer(self, self.used, False)
        self.callbacks += 1
        if not isinstance(reply, ConsumerReply):
            raise ConsumerProtocolError(
                f"Consumer must return a ConsumerReply, got {type(reply).__name__}"
            )
        if reply.status is DecodeStatus.STOP:
            LOGGER.debug("Consumer stopped decoding of page %d", self.page_number)
            self.stopped = True
            return False
        if not 0 <= reply.used < self.capacity:
            raise ConsumerProtocolError(
                f"Consumer left {reply.used} bytes in a buffer of {self.capacity}"
            )
        self.used = reply.used
        return True


class ContentStream(NamedTuple):
    """Location and encoding of one content stream body."""

    object_id: int
    start: int
    length: int
    filter_name: str | None


class StreamDecodePipeline:
    """Decode every content stream of a page through a :class:`TextOperatorDecoder`."""

    def __init__(self, block_size: int = BLOCK_SIZE) -> None:
        if block_size <= 0:
            raise ValueError("Block size must be greater than zero")
        self.block_size = block_size

    def decode_page(self, context: DecodeContext) -> DecodeResult:
        document = context.document
        resolver = document.resolver
        page = document.page(context.page_number)
        node = resolver.resolve(page.object_id)

        # Every stream is validated before the first byte is decoded.
        streams = [self.locate_stream(resolver, object_id) for object_id in self.content_ids(resolver, node)]
        LOGGER.debug(
            "Decoding page %d (object %d) from %d content stream(s)",
            page.page_number,
            page.object_id,
            len(streams),
        )

        context.reset()
        decoder = TextOperatorDecoder(context, context.text_state)
        for stream in streams:
            if not self._decode_stream(resolver, stream, decoder):
                return context.result()
            # Stream boundaries separate tokens.
            if decoder.close() is DecodeStatus.STOP:
                return context.result()
        context.finish()
        return context.result()

    # -- Stream lookup -------------------------------------------------------

    def content_ids(self, resolver: CrossReferenceResolver, node: ObjectRange) -> list[int]:
        """Return the content stream ids of a page, in drawing order."""

        references = resolver.read_reference_array(node, "/Contents")
        if references is not None:
            return references
        reference = resolver.read_reference(node, "/Contents")
        if reference is None:
            LOGGER.debug("Page object %d has no /Contents", node.id)
            return []
        return [reference]

    def locate_stream(self, resolver: CrossReferenceResolver, object_id: int) -> ContentStream:
        obj = resolver.resolve(object_id)
        if not obj.has_stream:
            raise MalformedObjectError(f"Content object {object_id} is not a stream")
        length = resolver.read_integer(obj, "/Length")
        if length is None or length < 0:
            raise MalformedObjectError(f"Content stream {object_id} has no usable /Length")

        filter_name = self.read_filter(resolver, obj)
        if filter_name is not None and filter_name != SUPPORTED_FILTER:
            raise UnsupportedFilterError(filter_name)

        start = self._body_start(resolver, obj)
        if filter_name is None and start + length > len(resolver.data):
            raise MalformedObjectError(f"Content stream {object_id} runs past the end of the document")
        return ContentStream(object_id=object_id, start=start, length=length, filter_name=filter_name)

    def read_filter(self, resolver: CrossReferenceResolver, obj: ObjectRange) -> str | None:
        """Return the single ``/Filter`` name of a stream, or ``None`` if unfiltered."""

        position = resolver.find_in_object(obj, "/Filter")
        if position is None:
            return None
        cursor = ByteCursor(resolver.data, position + len(b"/Filter"))
        try:
            cursor.skip_whitespace()
            if cursor.current == ord("/"):
                return cursor.read_name()
            if cursor.current != ord("["):
                raise MalformedObjectError(f"Unreadable /Filter in object {obj.id}")
            cursor.step()
            cursor.skip_whitespace()
            names: list[str] = []
            while cursor.current == ord("/"):
                names.append(cursor.read_name() or "")
                cursor.skip_whitespace()
        except OutOfBoundsError as exc:
            raise MalformedObjectError(f"Unterminated /Filter in object {obj.id}") from exc
        if len(names) != 1:
            raise UnsupportedFilterError(" ".join(names) or "[]")
        return names[0]

    def _body_start(self, resolver: CrossReferenceResolver, obj: ObjectRange) -> int:
        data = resolver.data
        keyword = data.find(b"stream", obj.dictionary_end, obj.end)
        if keyword == -1:
            raise MalformedObjectError(f"Stream keyword missing in object {obj.id}")
        start = keyword + len(b"stream")
        if data[start : start + 2] == b"\r\n":
            return start + 2
        if data[start : start + 1] in (b"\n", b"\r"):
            return start + 1
        return start

    # -- Decoding ------------------------------------------------------------

    def _decode_stream(
        self,
        resolver: CrossReferenceResolver,
        stream: ContentStream,
        decoder: TextOperatorDecoder,
    ) -> bool:
        if stream.length == 0:
            LOGGER.debug("Content stream %d is empty", stream.object_id)
            return True
        if stream.filter_name is None:
            return self._pass_through(resolver, stream, decoder)
        return self._inflate(resolver, stream, decoder)

    def _pass_through(
        self,
        resolver: CrossReferenceResolver,
        stream: ContentStream,
        decoder: TextOperatorDecoder,
    ) -> bool:
        data = resolver.data
        end = stream.start + stream.length
        for position in range(stream.start, end, self.block_size):
            block = data[position : min(position + self.block_size, end)]
            if decoder.feed(block) is DecodeStatus.STOP:
                return False
        return True

    def _inflate(
        self,
        resolver: CrossReferenceResolver,
        stream: ContentStream,
        decoder: TextOperatorDecoder,
    ) -> bool:
        data = resolver.data
        block_size = self.block_size
        end = min(stream.start + stream.length, len(data))
        position = stream.start
        inflater = zlib.decompressobj()
        try:
            while not inflater.eof:
                if position >= end:
                    raise DecompressionFailedError(
                        f"Content stream {stream.object_id} ends before the compressed data does"
                    )
                pending = data[position : min(position + block_size, end)]
                position += len(pending)
                while True:
                    block = inflater.decompress(pending, block_size)
                    pending = inflater.unconsumed_tail
                    if block and decoder.feed(block) is DecodeStatus.STOP:
                        return False
                    if inflater.eof or (not pending and len(block) < block_size):
                        break
        except zlib.error as exc:
            raise DecompressionFailedError(
                f"Corrupt compressed data in content stream {stream.object_id}: {exc}"
            ) from exc
        except MemoryError as exc:
            raise DecompressionFailedError(
                f"Out of memory inflating content stream {stream.object_id}"
            ) from exc
        return True
