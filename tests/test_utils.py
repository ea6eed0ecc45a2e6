from __future__ import annotations

import logging

import pytest

from pdftextx.utils import format_file_size, get_logger, map_file, resolve_path


def test_get_logger_installs_a_single_handler():
    logger = get_logger("pdftextx.tests.logging", logging.DEBUG)
    again = get_logger("pdftextx.tests.logging")

    assert logger is again
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert not logger.propagate


@pytest.mark.parametrize(
    ("size", "expected"),
    [(0, "0.0 B"), (512, "512.0 B"), (1536, "1.5 KB"), (5 * 1024 * 1024, "5.0 MB")],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_resolve_path_rejects_none():
    with pytest.raises(ValueError):
        resolve_path(None)


def test_map_file(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"%PDF-1.4\nbody")
    mapping = map_file(path)
    try:
        assert mapping[:5] == b"%PDF-"
        assert mapping.rfind(b"body") == 9
    finally:
        mapping.close()


def test_map_empty_file(tmp_path):
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")
    with pytest.raises(ValueError):
        map_file(path)
