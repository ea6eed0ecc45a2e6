"""Page tree traversal producing the ordered page list."""

from __future__ import annotations

import logging

from .constants import MAX_PAGE_TREE_DEPTH
from .exceptions import MalformedObjectError, PageTreeDepthError
from .types import ObjectRange, PageEntry
from .xref import CrossReferenceResolver

__all__ = ["PageTreeBuilder"]

LOGGER = logging.getLogger(__name__)


class PageTreeBuilder:
    """Walk ``/Root -> /Pages -> /Kids`` depth-first, left to right.

    The walk uses an explicit work stack so an untrusted tree cannot exhaust
    the interpreter's recursion limit; ``max_depth`` bounds the nesting.
    """

    def __init__(
        self,
        resolver: CrossReferenceResolver,
        *,
        max_depth: int = MAX_PAGE_TREE_DEPTH,
    ) -> None:
        self.resolver = resolver
        self.max_depth = max_depth

    def build(self) -> list[PageEntry]:
        resolver = self.resolver
        root = resolver.resolve(resolver.root_object_id)
        pages_id = resolver.read_reference(root, "/Pages")
        if pages_id is None:
            raise MalformedObjectError(f"Document catalog (object {root.id}) has no /Pages entry")

        pages: list[PageEntry] = []
        visited: set[int] = set()
        stack: list[tuple[int, int]] = [(pages_id, 0)]
        while stack:
            object_id, depth = stack.pop()
            if depth > self.max_depth:
                raise PageTreeDepthError(
                    f"Page tree deeper than {self.max_depth} levels at object {object_id}"
                )
            if object_id in visited:
                raise MalformedObjectError(f"Page tree visits object {object_id} twice")
            visited.add(object_id)

            node = resolver.resolve(object_id)
            if self._is_parent(node):
                kids = self.read_kids(node)
                stack.extend((kid, depth + 1) for kid in reversed(kids))
            elif resolver.find_in_object(node, "/Page") is not None:
                pages.append(PageEntry(page_number=len(pages) + 1, object_id=object_id))
            else:
                LOGGER.debug("Object %d has no /Page marker; not a page", object_id)

        LOGGER.info("Page tree contains %d page(s)", len(pages))
        return pages

    def _is_parent(self, node: ObjectRange) -> bool:
        resolver = self.resolver
        return (
            resolver.find_in_object(node, "/Count") is not None
            and resolver.find_in_object(node, "/Kids") is not None
        )

    def read_kids(self, node: ObjectRange) -> list[int]:
        """Return the object ids listed in ``node``'s ``/Kids`` array."""

        kids = self.resolver.read_reference_array(node, "/Kids")
        if kids is None:
            raise MalformedObjectError(f"/Kids of object {node.id} is not an array")
        return kids
