"""Cross-reference chain loading and indirect object resolution.

The resolver never parses the full object graph.  It bootstraps from the
``startxref`` line at the end of the file, reads the fixed-form xref tables
(following ``/Prev`` through incremental updates), and turns an object id into
the byte range of that object's dictionary on demand.
"""

from __future__ import annotations

import logging
import re

from .constants import DELIMITERS, EOF_MARKER, WHITESPACE
from .cursor import ByteCursor, ByteRegion
from .exceptions import (
    MalformedObjectError,
    MalformedXrefError,
    ObjectNotFoundError,
    OutOfBoundsError,
)
from .types import CrossReferenceTable, ObjectRange, XrefEntry

__all__ = ["CrossReferenceResolver"]

LOGGER = logging.getLogger(__name__)

_LT, _GT = ord("<"), ord(">")
_LPAREN, _RPAREN, _BACKSLASH = ord("("), ord(")"), ord("\\")
_VALUE = re.compile(rb"\s*([+-]?\d+)(\s+\d+\s+R\b)?")


def _as_key(key: str | bytes) -> bytes:
    return key.encode("latin-1") if isinstance(key, str) else key


class CrossReferenceResolver:
    """Resolve object ids to byte ranges through a chain of xref tables."""

    def __init__(self, data: ByteRegion) -> None:
        self._data = data
        self._length = len(data)
        self._root_object_id: int | None = None
        self.tables: list[CrossReferenceTable] = []

    @property
    def data(self) -> ByteRegion:
        return self._data

    @property
    def root_object_id(self) -> int:
        if self._root_object_id is None:
            raise MalformedXrefError("Cross-reference chain has not been loaded")
        return self._root_object_id

    # -- Loading -------------------------------------------------------------

    def locate_startxref(self) -> int:
        """Return the offset written on the line before the final ``%%EOF``."""

        try:
            cursor = ByteCursor.at_end(self._data)
        except OutOfBoundsError as exc:
            raise MalformedXrefError("Document is empty") from exc
        if cursor.seek_backward_to(b"%") is None or cursor.seek_backward_to(b"%") is None:
            raise MalformedXrefError("Unable to locate the %%EOF marker")
        if not cursor.startswith(EOF_MARKER):
            raise MalformedXrefError(f"Expected %%EOF at offset {cursor.position}")
        try:
            cursor.line_start_backward()
            offset = cursor.read_decimal_int(strict=True)
        except (OutOfBoundsError, ValueError) as exc:
            raise MalformedXrefError("startxref offset not found") from exc
        LOGGER.debug("Initial xref table located at offset %d", offset)
        return offset

    def load(self) -> list[CrossReferenceTable]:
        """Parse the newest xref section and every older one named by ``/Prev``."""

        tables: list[CrossReferenceTable] = []
        visited: set[int] = set()
        offset: int | None = self.locate_startxref()
        anchor = True
        while offset is not None:
            if offset in visited:
                raise MalformedXrefError(f"Cyclic /Prev chain revisits offset {offset}")
            visited.add(offset)
            section, root, prev = self.parse_section(offset, require_root=anchor)
            if anchor:
                self._root_object_id = root
                anchor = False
            tables.extend(section)
            offset = prev

        self.tables = tables
        LOGGER.info(
            "Loaded %d cross-reference table(s) from %d section(s); root object %s",
            len(tables),
            len(visited),
            self._root_object_id,
        )
        return tables

    def parse_section(
        self, offset: int, *, require_root: bool = False
    ) -> tuple[list[CrossReferenceTable], int | None, int | None]:
        """Parse the xref section at ``offset``.

        Returns the section's tables (one per subsection), the trailer's
        ``/Root`` object id and its ``/Prev`` offset.
        """

        try:
            cursor = ByteCursor(self._data, offset)
            cursor.skip_whitespace()
            if not cursor.startswith(b"xref"):
                raise MalformedXrefError(f"No xref keyword at offset {offset}")
            cursor.line_start_forward()
            cursor.skip_whitespace()

            tables: list[CrossReferenceTable] = []
            while not cursor.startswith(b"trailer"):
                if not 0x30 <= cursor.current <= 0x39:
                    raise MalformedXrefError(
                        f"Expected trailer keyword at offset {cursor.position}"
                    )
                table = self.parse_table(cursor)
                table.offset = offset
                tables.append(table)
                cursor.line_start_forward()
                cursor.skip_whitespace()
            root, prev = self._read_trailer(cursor.position, require_root=require_root)
        except OutOfBoundsError as exc:
            raise MalformedXrefError(f"Truncated xref section at offset {offset}") from exc

        for table in tables:
            table.root_object_id = root
            table.prev_offset = prev
        return tables, root, prev

    def parse_table(self, cursor: ByteCursor) -> CrossReferenceTable:
        """Read one ``<first> <count>`` header and its fixed-form entry lines.

        The cursor must sit on the header line and is left on the last entry.
        """

        try:
            first_object_id = cursor.read_decimal_int(strict=True)
            cursor.seek_to_next_token()
            entry_count = cursor.read_decimal_int(strict=True)
        except ValueError as exc:
            raise MalformedXrefError(f"Bad xref subsection header at offset {cursor.position}") from exc
        LOGGER.debug(
            "xref subsection starts at object %d and contains %d entries",
            first_object_id,
            entry_count,
        )

        table = CrossReferenceTable(first_object_id=first_object_id)
        for _ in range(entry_count):
            cursor.line_start_forward()
            cursor.skip_whitespace()
            try:
                byte_offset = cursor.read_decimal_int(strict=True)
                cursor.seek_to_next_token()
                generation = cursor.read_decimal_int(strict=True)
            except ValueError as exc:
                raise MalformedXrefError(f"Bad xref entry at offset {cursor.position}") from exc
            cursor.seek_to_next_token()
            flag = cursor.current
            if flag not in b"nf":
                raise MalformedXrefError(f"Bad xref entry type at offset {cursor.position}")
            table.entries.append(
                XrefEntry(byte_offset=byte_offset, generation=generation, is_free=flag == ord("f"))
            )
        return table

    def _read_trailer(self, trailer: int, *, require_root: bool) -> tuple[int | None, int | None]:
        begin = self._data.find(b"<<", trailer)
        if begin == -1:
            raise MalformedXrefError(f"Trailer at offset {trailer} has no dictionary")
        try:
            end = self._match_dictionary(begin)
        except MalformedObjectError as exc:
            raise MalformedXrefError(f"Unterminated trailer at offset {trailer}") from exc

        root: int | None = None
        position = self._find_key(begin, end, b"/Root")
        if position is not None:
            root = self._trailer_value(position + len(b"/Root"))
            LOGGER.debug("Document root located at object %d", root)
        elif require_root:
            raise MalformedXrefError(f"Trailer at offset {trailer} has no /Root entry")

        prev: int | None = None
        position = self._find_key(begin, end, b"/Prev")
        if position is not None:
            prev = self._trailer_value(position + len(b"/Prev"))
        return root, prev

    def _trailer_value(self, position: int) -> int:
        try:
            return self._read_value(position)[0]
        except MalformedObjectError as exc:
            raise MalformedXrefError(f"Bad trailer value at offset {position}") from exc

    # -- Object resolution ---------------------------------------------------

    def resolve(self, object_id: int) -> ObjectRange:
        """Return the byte range of ``object_id``'s dictionary.

        Tables are searched newest first, so an object rewritten by an
        incremental update shadows its older revision.
        """

        entry = self._entry(object_id)
        body = self._object_body(object_id, entry.byte_offset)
        data = self._data

        endobj = data.find(b"endobj", body)
        limit = self._length if endobj == -1 else endobj
        begin = data.find(b"<<", body, limit)
        if begin == -1:
            raise MalformedObjectError(f"Object {object_id} has no dictionary")
        dictionary_end = self._match_dictionary(begin)

        end = dictionary_end
        if dictionary_end < self._length:
            cursor = ByteCursor(data, dictionary_end)
            cursor.skip_whitespace()
            if cursor.startswith(b"stream"):
                stream_end = data.find(b"endstream", cursor.position)
                closing = -1 if stream_end == -1 else data.find(b"endobj", stream_end)
                if closing == -1:
                    raise MalformedObjectError(f"Stream object {object_id} is not terminated")
                end = closing
        return ObjectRange(id=object_id, begin=begin, end=end, dictionary_end=dictionary_end)

    def find_in_object(self, obj: ObjectRange, key: str | bytes) -> int | None:
        """Return the position of ``key`` inside ``obj``'s dictionary, or ``None``.

        Only whole names match, so ``/Page`` is not found inside ``/Pages``.
        The key's value is not parsed.
        """

        return self._find_key(obj.begin, obj.dictionary_end, _as_key(key))

    def read_reference(self, obj: ObjectRange, key: str | bytes) -> int | None:
        """Return the object id referenced (or the integer stored) under ``key``."""

        name = _as_key(key)
        position = self.find_in_object(obj, name)
        if position is None:
            return None
        return self._read_value(position + len(name))[0]

    def read_reference_array(self, obj: ObjectRange, key: str | bytes) -> list[int] | None:
        """Parse the ``[<id> <gen> R ...]`` array stored under ``key``.

        Returns ``None`` when the key is absent or its value is not an array.
        """

        name = _as_key(key)
        position = self.find_in_object(obj, name)
        if position is None:
            return None
        label = name.decode("latin-1")
        cursor = ByteCursor(self._data, min(position + len(name), self._length - 1))
        references: list[int] = []
        try:
            cursor.skip_whitespace()
            if cursor.current != ord("["):
                return None
            cursor.step()
            while True:
                cursor.skip_whitespace()
                if cursor.current == ord("]"):
                    break
                if cursor.position >= obj.dictionary_end:
                    raise MalformedObjectError(f"Unterminated {label} array in object {obj.id}")
                try:
                    reference = cursor.read_decimal_int(strict=True)
                except ValueError as exc:
                    raise MalformedObjectError(
                        f"Bad {label} reference in object {obj.id} at offset {cursor.position}"
                    ) from exc
                cursor.seek_to_next_token()  # object number
                cursor.seek_to_next_token()  # generation
                if cursor.current != ord("R"):
                    raise MalformedObjectError(
                        f"Bad {label} reference in object {obj.id} at offset {cursor.position}"
                    )
                cursor.step()
                references.append(reference)
        except OutOfBoundsError as exc:
            raise MalformedObjectError(f"Unterminated {label} array in object {obj.id}") from exc
        return references

    def read_integer(self, obj: ObjectRange, key: str | bytes) -> int | None:
        """Return the integer under ``key``, following an indirect reference."""

        name = _as_key(key)
        position = self.find_in_object(obj, name)
        if position is None:
            return None
        value, is_reference = self._read_value(position + len(name))
        if is_reference:
            return self.read_integer_object(value)
        return value

    def read_integer_object(self, object_id: int) -> int:
        """Read an indirect object whose body is a single integer."""

        entry = self._entry(object_id)
        body = self._object_body(object_id, entry.byte_offset)
        cursor = ByteCursor(self._data, min(body, self._length - 1))
        try:
            return cursor.read_decimal_int(strict=True)
        except ValueError as exc:
            raise MalformedObjectError(f"Object {object_id} is not an integer") from exc

    # -- Internal helpers ---------------------------------------------------

    def _entry(self, object_id: int) -> XrefEntry:
        for table in self.tables:
            if table.contains(object_id):
                entry = table.entry_for(object_id)
                if entry.is_free:
                    raise ObjectNotFoundError(object_id, f"Object {object_id} is marked free")
                return entry
        raise ObjectNotFoundError(object_id)

    def _object_body(self, object_id: int, offset: int) -> int:
        """Check the ``<id> <gen> obj`` header at ``offset``; return the body start."""

        cursor = ByteCursor(self._data, offset)
        cursor.skip_whitespace()
        found_id = cursor.read_decimal_int()
        cursor.seek_to_next_token()  # object number
        cursor.seek_to_next_token()  # generation
        if found_id != object_id or not cursor.startswith(b"obj"):
            raise MalformedObjectError(f"No '{object_id} <gen> obj' header at offset {offset}")
        return cursor.position + len(b"obj")

    def _read_value(self, position: int) -> tuple[int, bool]:
        match = _VALUE.match(self._data, position)
        if match is None:
            raise MalformedObjectError(f"Expected a number or reference at offset {position}")
        return int(match.group(1)), match.group(2) is not None

    def _find_key(self, begin: int, end: int, key: bytes) -> int | None:
        data = self._data
        index = begin
        while True:
            found = data.find(key, index, end)
            if found == -1:
                return None
            after = found + len(key)
            if after >= self._length or data[after] in WHITESPACE or data[after] in DELIMITERS:
                return found
            index = found + 1

    def _match_dictionary(self, begin: int) -> int:
        """Return the offset just past the ``>>`` matching the ``<<`` at ``begin``."""

        data = self._data
        length = self._length
        depth = 1
        index = begin + 2
        while index < length:
            byte = data[index]
            if byte == _LT:
                if index + 1 < length and data[index + 1] == _LT:
                    depth += 1
                    index += 2
                    continue
                close = data.find(b">", index + 1)
                if close == -1:
                    break
                index = close + 1
            elif byte == _GT:
                if index + 1 < length and data[index + 1] == _GT:
                    depth -= 1
                    index += 2
                    if depth == 0:
                        return index
                    continue
                index += 1
            elif byte == _LPAREN:
                index = self._skip_literal_string(index)
            else:
                index += 1
        raise MalformedObjectError(f"Unterminated dictionary at offset {begin}")

    def _skip_literal_string(self, start: int) -> int:
        data = self._data
        depth = 0
        index = start
        while index < self._length:
            byte = data[index]
            if byte == _BACKSLASH:
                index += 2
                continue
            if byte == _LPAREN:
                depth += 1
            elif byte == _RPAREN:
                depth -= 1
                if depth == 0:
                    return index + 1
            index += 1
        raise MalformedObjectError(f"Unterminated string at offset {start}")
