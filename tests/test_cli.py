from __future__ import annotations

from click.testing import CliRunner

from pdftextx import __version__
from pdftextx.cli import cli


def _invoke(*args: str):
    runner = CliRunner()
    return runner.invoke(cli, list(args))


def test_version():
    result = _invoke("--version")
    assert result.exit_code == 0
    assert __version__ in result.output


def test_info(pdf_file):
    result = _invoke("info", str(pdf_file))
    assert result.exit_code == 0, result.output
    assert "Pages" in result.output
    assert "1.7" in result.output
    assert "Quarterly Report" in result.output


def test_text_all_pages(pdf_file):
    result = _invoke("text", str(pdf_file))
    assert result.exit_code == 0, result.output
    assert "Quarterly Report\nRevenue grew" in result.output
    assert "Second page\nrevenue is flat" in result.output


def test_text_single_page_with_small_buffer(pdf_file):
    result = _invoke("text", str(pdf_file), "--page", "2", "--buffer-size", "5")
    assert result.exit_code == 0, result.output
    assert "Second page" in result.output
    assert "Quarterly" not in result.output


def test_text_unknown_page(pdf_file):
    result = _invoke("text", str(pdf_file), "--page", "9")
    assert result.exit_code == 1
    assert "Page 9 not found" in result.output


def test_text_reports_failing_page_and_continues(builder, tmp_path):
    builder.add_pages([b"ignored", b"BT (readable) Tj ET"])
    builder.add_stream(4, b"data", compress=False, filter_entry=b"/LZWDecode")
    path = tmp_path / "mixed.pdf"
    path.write_bytes(builder.build())

    result = _invoke("text", str(path))
    assert result.exit_code == 0, result.output
    assert "LZWDecode" in result.output
    assert "readable" in result.output


def test_info_survives_unreadable_first_page(builder, tmp_path):
    builder.add_pages([b"ignored", b"BT (readable) Tj ET"])
    builder.add_stream(4, b"data", compress=False, filter_entry=b"/LZWDecode")
    path = tmp_path / "mixed.pdf"
    path.write_bytes(builder.build())

    result = _invoke("info", str(path))
    assert result.exit_code == 0, result.output
    assert "Pages" in result.output
    assert "unavailable" in result.output
    assert "LZWDecode" in result.output


def test_grep(pdf_file):
    result = _invoke("grep", str(pdf_file), "-e", "revenue", "-i")
    assert result.exit_code == 0, result.output
    assert "1:2: Revenue grew" in result.output
    assert "2:2: revenue is flat" in result.output


def test_grep_without_matches(pdf_file):
    result = _invoke("grep", str(pdf_file), "-e", "nothing here")
    assert result.exit_code == 0
    assert "No matches" in result.output


def test_grep_invalid_pattern(pdf_file):
    result = _invoke("grep", str(pdf_file), "-e", "(unclosed")
    assert result.exit_code == 1
    assert "Invalid regular expression" in result.output


def test_title(pdf_file):
    result = _invoke("title", str(pdf_file))
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "Quarterly Report"


def test_malformed_file(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf")
    result = _invoke("title", str(path))
    assert result.exit_code == 1
    assert "Error" in result.output


def test_missing_file(tmp_path):
    result = _invoke("info", str(tmp_path / "absent.pdf"))
    assert result.exit_code != 0
