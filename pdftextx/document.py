"""Loaded document: version header, cross-reference chain and page list."""

from __future__ import annotations

import logging
import mmap
import re
from pathlib import Path
from typing import Optional, Union

from .constants import HEADER_MARKER, MAX_PAGE_TREE_DEPTH
from .cursor import ByteRegion
from .exceptions import MalformedHeaderError, PageNotFoundError
from .pages import PageTreeBuilder
from .types import CrossReferenceTable, ObjectRange, PageEntry
from .utils import map_file, resolve_path
from .xref import CrossReferenceResolver

__all__ = ["Document"]

LOGGER = logging.getLogger(__name__)

_VERSION = re.compile(re.escape(HEADER_MARKER) + rb"(\d+)\.(\d+)")
# Some producers write a few bytes of junk before the header.
_HEADER_WINDOW = 1024


class Document:
    """
    A PDF document opened for text extraction.

    Construction performs the whole load phase (header, cross-reference chain,
    page tree).  A document that fails to load raises and is never returned
    half built.

    Example:
        >>> with Document.open("report.pdf") as document:
        ...     print(document.page_count)
    """

    def __init__(
        self,
        data: ByteRegion,
        name: Optional[str] = None,
        *,
        max_depth: int = MAX_PAGE_TREE_DEPTH,
    ) -> None:
        self.name = name
        self._data = data
        self._mapping: Optional[mmap.mmap] = None

        self._version = self._read_version(data)
        self.resolver = CrossReferenceResolver(data)
        self.resolver.load()
        self._pages = PageTreeBuilder(self.resolver, max_depth=max_depth).build()
        LOGGER.info(
            "Loaded %s: PDF %s, %d page(s)",
            name or "<memory>",
            self._version,
            len(self._pages),
        )

    @classmethod
    def open(cls, path: Union[str, Path], *, max_depth: int = MAX_PAGE_TREE_DEPTH) -> Document:
        """Map ``path`` read-only and load it."""

        resolved = resolve_path(path)
        try:
            mapping = map_file(resolved)
        except ValueError as exc:
            raise MalformedHeaderError(f"{resolved.name} is empty") from exc
        try:
            document = cls(mapping, name=resolved.name, max_depth=max_depth)
        except BaseException:
            mapping.close()
            raise
        document._mapping = mapping
        return document

    @staticmethod
    def _read_version(data: ByteRegion) -> str:
        match = _VERSION.search(data[:_HEADER_WINDOW])
        if match is None:
            raise MalformedHeaderError("Missing %PDF-<major>.<minor> header")
        return f"{int(match.group(1))}.{int(match.group(2))}"

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def data(self) -> ByteRegion:
        return self._data

    @property
    def version(self) -> str:
        return self._version

    @property
    def file_size(self) -> int:
        return len(self._data)

    @property
    def xref_tables(self) -> list[CrossReferenceTable]:
        return list(self.resolver.tables)

    @property
    def root_object_id(self) -> int:
        return self.resolver.root_object_id

    @property
    def pages(self) -> list[PageEntry]:
        return list(self._pages)

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def page(self, page_number: int) -> PageEntry:
        if not 1 <= page_number <= len(self._pages):
            raise PageNotFoundError(page_number, len(self._pages))
        return self._pages[page_number - 1]

    def resolve(self, object_id: int) -> ObjectRange:
        return self.resolver.resolve(object_id)

    # ------------------------------------------------------------------
    # Resource management
    # ------------------------------------------------------------------
    @property
    def closed(self) -> bool:
        return self._mapping is not None and self._mapping.closed

    def close(self) -> None:
        """Release the file mapping, if this document owns one."""

        if self._mapping is not None and not self._mapping.closed:
            self._mapping.close()

    def __enter__(self) -> Document:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Document(name={self.name!r}, version={self._version!r}, pages={len(self._pages)})"
