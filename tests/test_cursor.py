from __future__ import annotations

import pytest

from pdftextx.cursor import ByteCursor
from pdftextx.exceptions import OutOfBoundsError


def test_seek_outside_region_raises():
    cursor = ByteCursor(b"abc")
    with pytest.raises(OutOfBoundsError):
        cursor.seek(3)
    with pytest.raises(OutOfBoundsError):
        cursor.seek(-1)
    assert cursor.position == 0


def test_empty_region_is_rejected():
    with pytest.raises(OutOfBoundsError):
        ByteCursor(b"")


def test_step_past_end_raises():
    cursor = ByteCursor.at_end(b"abc")
    assert cursor.current == ord("c")
    with pytest.raises(OutOfBoundsError):
        cursor.step()


def test_seek_forward_steps_off_current_match():
    cursor = ByteCursor(b"a%b%c")
    assert cursor.seek_forward_to(b"%") == 1
    assert cursor.seek_forward_to(b"%") == 3
    assert cursor.seek_forward_to(b"%") is None
    assert cursor.position == 3


def test_seek_backward_finds_both_percent_signs_of_eof_marker():
    data = b"startxref\n42\n%%EOF\n"
    cursor = ByteCursor.at_end(data)
    first = cursor.seek_backward_to(b"%")
    second = cursor.seek_backward_to(b"%")
    assert (first, second) == (data.index(b"%%EOF") + 1, data.index(b"%%EOF"))
    assert cursor.seek_backward_to(b"%") is None


def test_seek_to_substring_respects_end_bound():
    cursor = ByteCursor(b"xx endobj yy")
    assert cursor.seek_to_substring(b"endobj", end=6) is None
    assert cursor.position == 0
    assert cursor.seek_to_substring(b"endobj") == 3


def test_seek_to_next_token():
    cursor = ByteCursor(b"Foo bar baz")
    cursor.seek(1)
    assert cursor.seek_to_next_token() == 4
    assert cursor.startswith(b"bar")


def test_whitespace_skipping_stops_at_last_byte():
    cursor = ByteCursor(b"a   ")
    cursor.step()
    assert cursor.skip_whitespace() == 3


def test_line_start_backward_and_forward():
    data = b"first\nsecond\nthird"
    cursor = ByteCursor(data, data.index(b"hird"))
    assert cursor.line_start_backward() == data.index(b"second")
    assert cursor.line_start_forward() == data.index(b"third")


def test_line_start_backward_on_second_line_goes_to_start():
    cursor = ByteCursor(b"42\n%%EOF", 4)
    assert cursor.line_start_backward() == 0


@pytest.mark.parametrize("line_end", [b"\r", b"\r\n"])
def test_line_moves_accept_cr_and_crlf(line_end):
    data = line_end.join([b"first", b"second", b"third", b"fourth"])
    cursor = ByteCursor(data, data.index(b"hird"))
    assert cursor.line_start_backward() == data.index(b"second")
    assert cursor.line_start_forward() == data.index(b"third")
    assert cursor.line_start_forward() == data.index(b"fourth")


def test_line_start_backward_from_a_crlf_terminator():
    data = b"one\r\ntwo\r\nthree"
    cursor = ByteCursor(data, data.index(b"\r\nthree") + 1)
    assert cursor.line_start_backward() == data.index(b"one")


def test_line_start_backward_keeps_blank_lines():
    data = b"a\r\n\r\nb"
    cursor = ByteCursor(data, data.index(b"b"))
    assert cursor.line_start_backward() == 3


def test_line_start_forward_without_line_end():
    cursor = ByteCursor(b"no line end")
    with pytest.raises(OutOfBoundsError):
        cursor.line_start_forward()
    assert cursor.position == 0


def test_vertical_tab_is_not_whitespace():
    cursor = ByteCursor(b" \x0bx")
    assert cursor.skip_whitespace() == 1


@pytest.mark.parametrize(
    ("data", "expected"),
    [(b"  123 0 R", 123), (b"-7", -7), (b"+15x", 15), (b"0000000017 00000 n", 17)],
)
def test_read_decimal_int(data, expected):
    cursor = ByteCursor(data)
    assert cursor.read_decimal_int() == expected
    assert cursor.position == 0


def test_read_decimal_int_malformed():
    cursor = ByteCursor(b"obj")
    assert cursor.read_decimal_int() == 0
    with pytest.raises(ValueError):
        cursor.read_decimal_int(strict=True)


def test_read_name():
    cursor = ByteCursor(b"/FlateDecode/DCT >>")
    assert cursor.read_name() == "FlateDecode"
    assert cursor.read_name() == "DCT"
    assert cursor.current == ord(" ")
    assert cursor.read_name() is None
