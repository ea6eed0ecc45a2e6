from __future__ import annotations

import re

import pytest

from pdftextx import Document
from pdftextx.exceptions import MalformedHeaderError, MalformedXrefError, PageNotFoundError
from pdftextx.types import PageEntry


def test_load_from_bytes(pdf_factory):
    document = Document(pdf_factory([b"BT (a) Tj ET", b"BT (b) Tj ET"]), name="inline.pdf")

    assert document.version == "1.7"
    assert document.page_count == 2
    assert document.pages[1] == PageEntry(page_number=2, object_id=5)
    assert document.page(1).object_id == 3
    assert document.root_object_id == 1
    assert len(document.xref_tables) == 1
    assert document.resolve(1).id == 1
    assert "inline.pdf" in repr(document)


def test_version_header_is_required():
    with pytest.raises(MalformedHeaderError):
        Document(b"not a pdf at all\n%%EOF\n")


def test_version_is_read_from_header(builder):
    builder.add_pages([b"BT (a) Tj ET"])
    builder.version = "2.0"
    data = builder.build()
    assert Document(data).version == "2.0"


def test_trailer_without_root_fails_to_load(builder):
    builder.add_pages([b"BT (a) Tj ET"])
    builder.root = None
    with pytest.raises(MalformedXrefError):
        Document(builder.build())


@pytest.mark.parametrize("page_number", [0, 3, -1])
def test_page_lookup_out_of_range(pdf_factory, page_number):
    document = Document(pdf_factory([b"BT (a) Tj ET", b"BT (b) Tj ET"]))
    with pytest.raises(PageNotFoundError) as excinfo:
        document.page(page_number)
    assert excinfo.value.page_number == page_number


def test_accessors_return_copies(pdf_factory):
    document = Document(pdf_factory([b"BT (a) Tj ET"]))
    document.pages.clear()
    document.xref_tables.clear()
    assert document.page_count == 1
    assert len(document.xref_tables) == 1


def test_open_maps_file_and_close_releases_it(pdf_file):
    with Document.open(pdf_file) as document:
        assert document.name == "report.pdf"
        assert document.page_count == 2
        assert document.file_size == pdf_file.stat().st_size
        assert not document.closed
    assert document.closed


def test_open_empty_file(tmp_path):
    path = tmp_path / "empty.pdf"
    path.write_bytes(b"")
    with pytest.raises(MalformedHeaderError):
        Document.open(path)


def test_open_pypdf_document(pypdf_sample):
    with Document.open(pypdf_sample) as document:
        assert re.fullmatch(r"\d\.\d", document.version)
        assert document.page_count == 2
        assert [page.page_number for page in document.pages] == [1, 2]
