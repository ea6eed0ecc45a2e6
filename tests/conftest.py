from __future__ import annotations

import sys
import zlib
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

import pytest
from pypdf import PdfWriter
from pypdf.generic import DecodedStreamObject, DictionaryObject, NameObject

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

Body = Union[bytes, str]


def _as_bytes(value: Body) -> bytes:
    return value.encode("latin-1") if isinstance(value, str) else value


def _runs(ids: list[int]) -> list[list[int]]:
    runs: list[list[int]] = []
    for object_id in ids:
        if runs and runs[-1][-1] + 1 == object_id:
            runs[-1].append(object_id)
        else:
            runs.append([object_id])
    return runs


class PDFBuilder:
    """Writes byte-exact documents with classic xref tables.

    Every call to :meth:`new_revision` starts an incremental update whose xref
    section points back at the previous one through ``/Prev``.
    """

    def __init__(self, version: str = "1.7") -> None:
        self.version = version
        self.revisions: list[dict[int, bytes]] = [{}]
        self.root: Optional[int] = 1
        self.self_referencing_prev = False
        self.xref_offsets: list[int] = []

    def add(self, object_id: int, body: Body) -> PDFBuilder:
        self.revisions[-1][object_id] = _as_bytes(body)
        return self

    def add_stream(
        self,
        object_id: int,
        content: Body,
        *,
        compress: bool = True,
        length: Optional[Union[int, bytes]] = None,
        filter_entry: Optional[bytes] = None,
    ) -> PDFBuilder:
        payload = _as_bytes(content)
        data = zlib.compress(payload) if compress else payload
        if length is None:
            length = len(data)
        length_value = b"%d" % length if isinstance(length, int) else length
        if filter_entry is None and compress:
            filter_entry = b"/FlateDecode"
        entries = b"/Length " + length_value
        if filter_entry is not None:
            entries += b" /Filter " + filter_entry
        body = b"<< " + entries + b" >>\nstream\n" + data + b"\nendstream"
        return self.add(object_id, body)

    def add_pages(self, contents: Iterable[Optional[Body]], *, compress: bool = True) -> PDFBuilder:
        """Catalog 1, a flat page tree 2, then one page and one content stream per entry."""

        contents = list(contents)
        page_ids = [3 + 2 * index for index in range(len(contents))]
        kids = b" ".join(b"%d 0 R" % page_id for page_id in page_ids)
        self.add(1, b"<< /Type /Catalog /Pages 2 0 R >>")
        self.add(2, b"<< /Type /Pages /Kids [" + kids + b"] /Count %d >>" % len(page_ids))
        for page_id, content in zip(page_ids, contents):
            if content is None:
                self.add(page_id, b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>")
                continue
            self.add(
                page_id,
                b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents %d 0 R >>"
                % (page_id + 1),
            )
            self.add_stream(page_id + 1, content, compress=compress)
        return self

    def new_revision(self) -> PDFBuilder:
        self.revisions.append({})
        return self

    def build(self) -> bytes:
        out = bytearray(b"%PDF-" + self.version.encode("ascii") + b"\n%\xe2\xe3\xcf\xd3\n")
        size = max((max(revision) for revision in self.revisions if revision), default=0) + 1
        self.xref_offsets = []
        previous: Optional[int] = None
        for index, revision in enumerate(self.revisions):
            offsets: dict[int, int] = {}
            for object_id in sorted(revision):
                offsets[object_id] = len(out)
                out += b"%d 0 obj\n" % object_id + revision[object_id] + b"\nendobj\n"

            xref_offset = len(out)
            self.xref_offsets.append(xref_offset)
            out += b"xref\n"
            if index == 0:
                out += b"0 %d\n" % size
                for object_id in range(size):
                    if object_id in offsets:
                        out += b"%010d 00000 n \n" % offsets[object_id]
                    else:
                        out += b"0000000000 65535 f \n"
            else:
                for run in _runs(sorted(offsets)):
                    out += b"%d %d\n" % (run[0], len(run))
                    for object_id in run:
                        out += b"%010d 00000 n \n" % offsets[object_id]

            trailer = b"/Size %d" % size
            if self.root is not None:
                trailer += b" /Root %d 0 R" % self.root
            is_last = index == len(self.revisions) - 1
            if is_last and self.self_referencing_prev:
                trailer += b" /Prev %d" % xref_offset
            elif previous is not None:
                trailer += b" /Prev %d" % previous
            out += b"trailer\n<< " + trailer + b" >>\n"
            previous = xref_offset

        out += b"startxref\n%d\n%%%%EOF\n" % previous
        return bytes(out)


@pytest.fixture()
def builder() -> PDFBuilder:
    return PDFBuilder()


@pytest.fixture()
def pdf_factory() -> Callable[..., bytes]:
    def _create(contents: Iterable[Optional[Body]], *, compress: bool = True) -> bytes:
        return PDFBuilder().add_pages(contents, compress=compress).build()

    return _create


@pytest.fixture()
def pdf_file(tmp_path: Path, pdf_factory: Callable[..., bytes]) -> Path:
    path = tmp_path / "report.pdf"
    path.write_bytes(
        pdf_factory(
            [
                b"BT /F1 18 Tf 72 720 Td (Quarterly Report) Tj 0 -24 Td (Revenue grew) Tj ET",
                b"BT /F1 12 Tf 72 720 Td (Second page) Tj 0 -14 Td (revenue is flat) Tj ET",
            ]
        )
    )
    return path


@pytest.fixture()
def pypdf_sample(tmp_path: Path) -> Path:
    """A two-page document written by pypdf; page 2 has no content stream."""

    path = tmp_path / "pypdf-sample.pdf"
    writer = PdfWriter()
    page = writer.add_blank_page(width=612, height=792)
    stream = DecodedStreamObject()
    stream.set_data(b"BT /F1 12 Tf 72 720 Td (Written by pypdf) Tj 0 -14 Td (second line) Tj ET")
    page[NameObject("/Contents")] = writer._add_object(stream.flate_encode())
    page[NameObject("/Resources")] = DictionaryObject()
    writer.add_blank_page(width=612, height=792)
    writer.add_metadata({"/Title": "Sample (with parentheses)", "/Producer": "pdftextx-tests"})
    with path.open("wb") as handle:
        writer.write(handle)
    return path
