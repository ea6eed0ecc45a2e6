"""
Type definitions and dataclasses for pdftextx.

This module defines the data structures shared by the resolver, the page tree
builder and the decode pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True, slots=True)
class XrefEntry:
    """Single fixed-form line of a cross-reference table."""

    byte_offset: int
    generation: int
    is_free: bool


@dataclass(slots=True)
class CrossReferenceTable:
    """
    One cross-reference subsection.

    Attributes:
        first_object_id: Object id described by ``entries[0]``
        entries: Entries indexed by ``object_id - first_object_id``
        offset: Byte offset of the ``xref`` keyword of the owning section
        root_object_id: Catalog id, set on the tables of the newest section
        prev_offset: Offset of the older section named by ``/Prev``, if any
    """

    first_object_id: int
    entries: list[XrefEntry] = field(default_factory=list)
    offset: int = 0
    root_object_id: int | None = None
    prev_offset: int | None = None

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    def contains(self, object_id: int) -> bool:
        return self.first_object_id <= object_id < self.first_object_id + self.entry_count

    def entry_for(self, object_id: int) -> XrefEntry:
        return self.entries[object_id - self.first_object_id]


@dataclass(frozen=True, slots=True)
class ObjectRange:
    """
    Byte range of an indirect object's dictionary.

    ``begin`` points at the opening ``<<`` and ``dictionary_end`` just past the
    matching ``>>``.  For stream objects ``end`` extends to the ``endobj``
    keyword so the stream body lies inside the range; otherwise it equals
    ``dictionary_end``.
    """

    id: int
    begin: int
    end: int
    dictionary_end: int

    @property
    def has_stream(self) -> bool:
        return self.end > self.dictionary_end


@dataclass(frozen=True, slots=True)
class PageEntry:
    """Leaf page of the page tree with its 1-based position in document order."""

    page_number: int
    object_id: int


class DecodeStatus(Enum):
    """Continue/stop signal exchanged between the decoder and its consumer."""

    CONTINUE = "continue"
    STOP = "stop"


@dataclass(frozen=True, slots=True)
class ConsumerReply:
    """
    Value returned by a consumer callback.

    Attributes:
        status: ``STOP`` halts decoding immediately
        used: Number of bytes still occupying the buffer after the callback
    """

    status: DecodeStatus = DecodeStatus.CONTINUE
    used: int = 0

    @classmethod
    def proceed(cls, used: int = 0) -> ConsumerReply:
        return cls(DecodeStatus.CONTINUE, used)

    @classmethod
    def stop(cls) -> ConsumerReply:
        return cls(DecodeStatus.STOP, 0)


@dataclass(slots=True)
class DecodeResult:
    """
    Result of decoding a single page.

    Attributes:
        page_number: Page that was decoded
        stopped: Whether the consumer asked to stop before the input ran out
        bytes_delivered: Total decoded bytes written to the output buffer
        callbacks: Number of consumer invocations, the final one included
    """

    page_number: int
    stopped: bool = False
    bytes_delivered: int = 0
    callbacks: int = 0

    def __str__(self) -> str:
        state = "stopped" if self.stopped else "finished"
        return (
            f"DecodeResult(page={self.page_number}, {state}, "
            f"bytes={self.bytes_delivered}, callbacks={self.callbacks})"
        )
