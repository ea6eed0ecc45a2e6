"""Shared constants for the pdftextx resolver and decoder."""

from __future__ import annotations

__all__ = [
    "BLOCK_SIZE",
    "DEFAULT_BUFFER_SIZE",
    "TITLE_BUFFER_SIZE",
    "OPERAND_STACK_DEPTH",
    "MAX_PAGE_TREE_DEPTH",
    "WORD_GAP_RATIO",
    "SUPPORTED_FILTER",
    "WHITESPACE",
    "DELIMITERS",
    "HEADER_MARKER",
    "EOF_MARKER",
    "TEXT_ENCODING",
]

# Compressed input and decompressed output are both processed in blocks of this size.
BLOCK_SIZE = 1024
DEFAULT_BUFFER_SIZE = 4096
TITLE_BUFFER_SIZE = 256

# Tm and cm take six operands; two spare slots.
OPERAND_STACK_DEPTH = 8
MAX_PAGE_TREE_DEPTH = 64

# Kerning gaps of at least this fraction of an em become a space.
WORD_GAP_RATIO = 0.2

SUPPORTED_FILTER = "FlateDecode"

WHITESPACE = b"\x00\t\n\r\f "
DELIMITERS = b"()<>[]{}/%"
HEADER_MARKER = b"%PDF-"
EOF_MARKER = b"%%EOF"

# Literal string bytes are handed out undecoded; helpers read them as Latin-1.
TEXT_ENCODING = "latin-1"
