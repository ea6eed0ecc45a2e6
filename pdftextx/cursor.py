"""Positioned scanning over a read-only document byte region.

:class:`ByteCursor` is the primitive every other component scans with.  It
never wraps or clamps: explicit repositioning outside ``[0, len)`` raises
:class:`~pdftextx.exceptions.OutOfBoundsError`, while searches that run into a
bound return ``None`` and leave the cursor where it was.
"""

from __future__ import annotations

import mmap
from typing import Union

from .constants import DELIMITERS, WHITESPACE
from .exceptions import OutOfBoundsError

__all__ = ["ByteCursor", "ByteRegion"]

ByteRegion = Union[bytes, bytearray, mmap.mmap]

_NEWLINE = 0x0A
_CR = 0x0D


def _as_byte(value: int | bytes) -> int:
    if isinstance(value, int):
        return value
    if len(value) != 1:
        raise ValueError(f"Expected a single byte, got {value!r}")
    return value[0]


class ByteCursor:
    """Position-bearing view over a document byte region."""

    __slots__ = ("_data", "_length", "_position")

    def __init__(self, data: ByteRegion, position: int = 0) -> None:
        self._data = data
        self._length = len(data)
        if self._length == 0:
            raise OutOfBoundsError("Cannot place a cursor in an empty region")
        self._position = 0
        self.seek(position)

    @classmethod
    def at_end(cls, data: ByteRegion) -> ByteCursor:
        """Return a cursor positioned on the last byte of ``data``."""

        return cls(data, len(data) - 1)

    # -- Accessors -----------------------------------------------------------

    @property
    def position(self) -> int:
        return self._position

    @property
    def length(self) -> int:
        return self._length

    @property
    def current(self) -> int:
        return self._data[self._position]

    def startswith(self, text: bytes) -> bool:
        end = self._position + len(text)
        return self._data[self._position : end] == text

    # -- Repositioning ------------------------------------------------------

    def seek(self, offset: int) -> ByteCursor:
        if not 0 <= offset < self._length:
            raise OutOfBoundsError(
                f"Offset {offset} is outside the document ({self._length} bytes)"
            )
        self._position = offset
        return self

    def step(self, delta: int = 1) -> ByteCursor:
        return self.seek(self._position + delta)

    def seek_forward_to(self, target: int | bytes) -> int | None:
        """Move to the next occurrence of ``target``.

        When the cursor already sits on ``target`` it steps off first, so
        repeated calls make progress.  Returns the new position, or ``None``
        when the end of the region is reached first.
        """

        needle = bytes((_as_byte(target),))
        start = self._position
        if self._data[start] == needle[0]:
            start += 1
        found = self._data.find(needle, start)
        if found == -1:
            return None
        self._position = found
        return found

    def seek_backward_to(self, target: int | bytes) -> int | None:
        """Mirror of :meth:`seek_forward_to` scanning towards offset zero."""

        needle = bytes((_as_byte(target),))
        end = self._position
        if self._data[end] == needle[0]:
            end -= 1
        if end < 0:
            return None
        found = self._data.rfind(needle, 0, end + 1)
        if found == -1:
            return None
        self._position = found
        return found

    def seek_to_substring(self, text: bytes, end: int | None = None) -> int | None:
        """Forward literal search from the current position.

        The whole match must lie before ``end`` (default: end of region).
        """

        limit = self._length if end is None else min(end, self._length)
        found = self._data.find(text, self._position, limit)
        if found == -1:
            return None
        self._position = found
        return found

    def skip_whitespace(self) -> int:
        last = self._length - 1
        while self._position < last and self._data[self._position] in WHITESPACE:
            self._position += 1
        return self._position

    def seek_to_next_token(self) -> int:
        """Skip the token under the cursor and the whitespace after it.

        Example: on the ``a`` of ``"Foo bar baz"`` the cursor ends on the ``b``
        of ``baz``.
        """

        last = self._length - 1
        while self._position < last and self._data[self._position] not in WHITESPACE:
            self._position += 1
        return self.skip_whitespace()

    def line_start_backward(self) -> int:
        """Move to the first byte of the previous line.

        Lines end in LF, CR or CRLF.  Two end-of-line scans are needed
        because the cursor usually starts in the middle of the current line;
        a cursor sitting on a line end belongs to the line it terminates.
        """

        end = self._line_end_backward(self._terminator_start(self._position) - 1)
        if end is None:
            raise OutOfBoundsError("No line precedes the cursor")
        previous = self._line_end_backward(self._terminator_start(end) - 1)
        if previous is None:
            return self.seek(0).position
        return self.seek(previous + 1).position

    def line_start_forward(self) -> int:
        """Move to the first byte after the next line end."""

        end = self._line_end_forward(self._position)
        if end is None:
            raise OutOfBoundsError("No line follows the cursor")
        if self._data[end] == _CR and self._data[end + 1 : end + 2] == b"\n":
            end += 1
        return self.seek(end + 1).position

    def _line_end_forward(self, start: int) -> int | None:
        found = [i for i in (self._data.find(b"\n", start), self._data.find(b"\r", start)) if i != -1]
        return min(found) if found else None

    def _line_end_backward(self, end: int) -> int | None:
        if end < 0:
            return None
        found = max(self._data.rfind(b"\n", 0, end + 1), self._data.rfind(b"\r", 0, end + 1))
        return None if found == -1 else found

    def _terminator_start(self, index: int) -> int:
        """First byte of the line end covering ``index``, or ``index + 1`` when there is none."""

        data = self._data
        if data[index] == _NEWLINE:
            return index - 1 if index > 0 and data[index - 1] == _CR else index
        if data[index] == _CR:
            return index
        return index + 1

    # -- Reading ------------------------------------------------------------

    def read_decimal_int(self, *, strict: bool = False) -> int:
        """Parse a base-10 integer at the cursor without moving it.

        Leading whitespace and a sign are accepted.  Malformed input yields
        ``0`` unless ``strict`` is set, in which case :class:`ValueError` is
        raised and the caller decides how to report it.
        """

        data = self._data
        index = self._position
        length = self._length
        while index < length and data[index] in WHITESPACE:
            index += 1
        start = index
        if index < length and data[index] in b"+-":
            index += 1
        digits = index
        while index < length and 0x30 <= data[index] <= 0x39:
            index += 1
        if index == digits:
            if strict:
                raise ValueError(f"Expected integer at offset {self._position}")
            return 0
        return int(data[start:index])

    def read_name(self) -> str | None:
        """Read the ``/Name`` token at the cursor and move past it."""

        if self.current != ord("/"):
            return None
        data = self._data
        index = self._position + 1
        while index < self._length and data[index] not in WHITESPACE and data[index] not in DELIMITERS:
            index += 1
        name = bytes(data[self._position + 1 : index]).decode("latin-1")
        self._position = min(index, self._length - 1)
        return name

    def __repr__(self) -> str:
        return f"ByteCursor(position={self._position}, length={self._length})"
