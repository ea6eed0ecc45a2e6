"""Content stream interpreter reconstructing line- and word-broken text.

Only the text positioning and text showing operators matter here.  Literal
strings are copied to the output as they are scanned; ``Td``/``TD``/``T*``,
``Tm`` and the kerning numbers of ``TJ`` arrays decide where newlines and
spaces go.  Everything else (paths, colours, images, names) is skipped.

The decoder is fed one decompressed block at a time and keeps its scanning
mode between blocks, so tokens split across a block boundary are handled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from .constants import DELIMITERS, OPERAND_STACK_DEPTH, WHITESPACE, WORD_GAP_RATIO
from .exceptions import OperandStackOverflowError
from .types import DecodeStatus

__all__ = ["OperandStack", "TextState", "TextOperatorDecoder", "OutputSink"]

LOGGER = logging.getLogger(__name__)

_NEWLINE = ord("\n")
_CR = ord("\r")
_SPACE = ord(" ")
_BACKSLASH = ord("\\")
_LPAREN, _RPAREN = ord("("), ord(")")
_LBRACKET, _RBRACKET = ord("["), ord("]")
_LT, _GT = ord("<"), ord(">")
_SLASH, _PERCENT = ord("/"), ord("%")
_NUMBER_START = b"0123456789+-."
_NUMBER_BODY = b"0123456789."
_OCTAL = b"01234567"
_ESCAPES = {ord("n"): 0x0A, ord("r"): 0x0D, ord("t"): 0x09, ord("b"): 0x08, ord("f"): 0x0C}

IDENTITY_MATRIX = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


class OutputSink(Protocol):
    """Anything that accepts decoded bytes one at a time.

    ``emit`` returns ``False`` once the consumer has asked to stop.
    """

    def emit(self, byte: int) -> bool: ...


class OperandStack:
    """Bounded operand stack that refuses to grow past its capacity."""

    __slots__ = ("capacity", "_values")

    def __init__(self, capacity: int = OPERAND_STACK_DEPTH) -> None:
        self.capacity = capacity
        self._values: list[float] = []

    def push(self, value: float) -> None:
        if len(self._values) >= self.capacity:
            raise OperandStackOverflowError(
                f"More than {self.capacity} operands pushed before an operator"
            )
        self._values.append(value)

    def pop(self) -> float:
        """Pop the newest operand; a missing operand reads as ``0.0``."""

        return self._values.pop() if self._values else 0.0

    def clear(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


@dataclass(slots=True)
class TextState:
    """Text state of the page being decoded.

    Attributes:
        matrix: Text matrix ``Tm`` as ``[a, b, c, d, e, f]``
        char_spacing: ``Tc``
        word_spacing: ``Tw``
        font_size: ``Tfs``
        horizontal_scale: ``Th`` as a fraction (``Tz`` / 100)
        last_translation: Horizontal translation of the last positioning
            operator; kept for callers inspecting the state, the break
            heuristics compare ``last_position`` instead
        running_offset: Gap accumulated inside a ``TJ`` array since the
            last shown glyph; a space is emitted when it reaches
            ``WORD_GAP_RATIO`` of an em
        operands: Numeric operands waiting for their operator
        in_array: Between ``[`` and ``]``
        in_text_object: Between ``BT`` and ``ET``
        last_position: ``(e, f)`` after the last ``Td``/``TD``/``Tm``
        shown_text: Some text has been emitted for this page
        shown_since_position: Text was emitted since the last positioning operator
    """

    matrix: list[float] = field(default_factory=lambda: list(IDENTITY_MATRIX))
    char_spacing: float = 0.0
    word_spacing: float = 0.0
    font_size: float = 1.0
    horizontal_scale: float = 1.0
    last_translation: float = 0.0
    running_offset: float = 0.0
    operands: OperandStack = field(default_factory=OperandStack)
    in_array: bool = False
    in_text_object: bool = False
    last_position: tuple[float, float] | None = None
    shown_text: bool = False
    shown_since_position: bool = False

    def reset(self) -> None:
        """Restore the initial values; called whenever a new page starts."""

        self.matrix = list(IDENTITY_MATRIX)
        self.char_spacing = 0.0
        self.word_spacing = 0.0
        self.font_size = 1.0
        self.horizontal_scale = 1.0
        self.last_translation = 0.0
        self.running_offset = 0.0
        self.operands.clear()
        self.in_array = False
        self.in_text_object = False
        self.last_position = None
        self.shown_text = False
        self.shown_since_position = False


class _Mode(Enum):
    SCANNING = "scanning"
    LITERAL_STRING = "literal-string"
    NUMBER = "number"
    OPERATOR = "operator"
    NAME = "name"
    HEX_STRING = "hex-string"
    COMMENT = "comment"
    INLINE_IMAGE = "inline-image"


class TextOperatorDecoder:
    """Incremental interpreter for the text subset of a content stream."""

    def __init__(self, sink: OutputSink, state: TextState | None = None) -> None:
        self.sink = sink
        self.state = state if state is not None else TextState()
        self._mode = _Mode.SCANNING
        self._token = bytearray()
        self._string_depth = 0
        self._escape = False
        self._skip_lf = False
        self._octal: bytearray | None = None
        self._hex_started = False
        self._image_tail = b""

    def reset(self) -> None:
        self.state.reset()
        self._mode = _Mode.SCANNING
        self._token.clear()
        self._string_depth = 0
        self._escape = False
        self._skip_lf = False
        self._octal = None
        self._hex_started = False
        self._image_tail = b""

    # -- Public entrypoints -------------------------------------------------

    def feed(self, block: bytes) -> DecodeStatus:
        """Interpret one decompressed block."""

        for byte in block:
            if not self._consume(byte):
                return DecodeStatus.STOP
        return DecodeStatus.CONTINUE

    def close(self) -> DecodeStatus:
        """Finish a token left open at the end of the input."""

        mode = self._mode
        self._mode = _Mode.SCANNING
        self._escape = False
        self._skip_lf = False
        if mode is _Mode.NUMBER:
            if not self._push_number():
                return DecodeStatus.STOP
        elif mode is _Mode.OPERATOR:
            if not self._dispatch(bytes(self._token)):
                return DecodeStatus.STOP
        elif mode is _Mode.LITERAL_STRING and self._octal is not None:
            if not self._emit_text(self._octal_value()):
                return DecodeStatus.STOP
        self._token.clear()
        return DecodeStatus.CONTINUE

    # -- Scanner ------------------------------------------------------------

    def _consume(self, byte: int) -> bool:
        mode = self._mode
        if mode is _Mode.SCANNING:
            return self._scan(byte)
        if mode is _Mode.LITERAL_STRING:
            return self._literal(byte)
        if mode is _Mode.NUMBER:
            if byte in _NUMBER_BODY:
                self._token.append(byte)
                return True
            self._mode = _Mode.SCANNING
            if not self._push_number():
                return False
            return self._scan(byte)
        if mode is _Mode.OPERATOR:
            if byte not in WHITESPACE and byte not in DELIMITERS:
                self._token.append(byte)
                return True
            self._mode = _Mode.SCANNING
            operator = bytes(self._token)
            self._token.clear()
            if not self._dispatch(operator):
                return False
            if self._mode is not _Mode.SCANNING:
                return True
            return self._scan(byte)
        if mode is _Mode.NAME:
            if byte in WHITESPACE or byte in DELIMITERS:
                self._mode = _Mode.SCANNING
                return self._scan(byte)
            return True
        if mode is _Mode.HEX_STRING:
            if byte == _LT and not self._hex_started:
                # "<<" opens a dictionary; its contents are scanned normally.
                self._mode = _Mode.SCANNING
            elif byte == _GT:
                self._mode = _Mode.SCANNING
            elif byte not in WHITESPACE:
                self._hex_started = True
            return True
        if mode is _Mode.COMMENT:
            if byte in b"\r\n":
                self._mode = _Mode.SCANNING
            return True
        # Inline image data runs until whitespace, "EI", whitespace.
        tail = (self._image_tail + bytes((byte,)))[-4:]
        self._image_tail = tail
        if len(tail) == 4 and tail[0] in WHITESPACE and tail[1:3] == b"EI" and tail[3] in WHITESPACE:
            self._mode = _Mode.SCANNING
            self._image_tail = b""
        return True

    def _scan(self, byte: int) -> bool:
        state = self.state
        if byte in WHITESPACE:
            return True
        if byte == _LPAREN:
            self._mode = _Mode.LITERAL_STRING
            self._string_depth = 1
            return True
        if byte == _LBRACKET:
            state.in_array = True
            state.running_offset = 0.0
            return True
        if byte == _RBRACKET:
            state.in_array = False
            return True
        if byte in _NUMBER_START:
            self._mode = _Mode.NUMBER
            self._token = bytearray((byte,))
            return True
        if byte == _SLASH:
            self._mode = _Mode.NAME
            return True
        if byte == _LT:
            self._mode = _Mode.HEX_STRING
            self._hex_started = False
            return True
        if byte == _PERCENT:
            self._mode = _Mode.COMMENT
            return True
        if byte in DELIMITERS:
            return True
        self._mode = _Mode.OPERATOR
        self._token = bytearray((byte,))
        return True

    def _literal(self, byte: int) -> bool:
        if self._skip_lf:
            # A backslash before CRLF continues the line over both bytes.
            self._skip_lf = False
            if byte == _NEWLINE:
                return True
        if self._octal is not None:
            if byte in _OCTAL and len(self._octal) < 3:
                self._octal.append(byte)
                return True
            if not self._emit_text(self._octal_value()):
                return False
        if self._escape:
            self._escape = False
            if byte in _OCTAL:
                self._octal = bytearray((byte,))
                return True
            if byte in b"\r\n":
                self._skip_lf = byte == _CR
                return True
            return self._emit_text(_ESCAPES.get(byte, byte))
        if byte == _BACKSLASH:
            self._escape = True
            return True
        if byte == _LPAREN:
            self._string_depth += 1
        elif byte == _RPAREN:
            self._string_depth -= 1
            if self._string_depth == 0:
                self._mode = _Mode.SCANNING
                return True
        return self._emit_text(byte)

    def _octal_value(self) -> int:
        value = int(bytes(self._octal or b"0"), 8) & 0xFF
        self._octal = None
        return value

    # -- Operators ----------------------------------------------------------

    def _push_number(self) -> bool:
        token = bytes(self._token)
        self._token.clear()
        try:
            value = float(token)
        except ValueError:
            LOGGER.debug("Malformed number %r read as 0", token)
            value = 0.0
        if self.state.in_array:
            return self._kerning(value)
        self.state.operands.push(value)
        return True

    def _dispatch(self, operator: bytes) -> bool:
        state = self.state
        operands = state.operands
        proceed = True

        if operator in (b"Td", b"TD"):
            ty = operands.pop()
            tx = operands.pop()
            proceed = self._next_line(tx, ty)
        elif operator == b"T*":
            proceed = self._line_break(_NEWLINE)
        elif operator == b"Tm":
            values = [operands.pop() for _ in range(6)]
            values.reverse()
            proceed = self._set_matrix(values)
        elif operator == b"Tc":
            state.char_spacing = operands.pop()
        elif operator == b"Tw":
            state.word_spacing = operands.pop()
        elif operator == b"Tf":
            size = operands.pop()
            if size:
                state.font_size = abs(size)
        elif operator == b"Tz":
            state.horizontal_scale = operands.pop() / 100.0
        elif len(operator) == 2 and operator[0] == ord("T"):
            operands.pop()
        elif operator in (b"'", b'"'):
            proceed = self._line_break(_NEWLINE)
        elif operator == b"BT":
            state.in_text_object = True
            state.matrix = list(IDENTITY_MATRIX)
        elif operator == b"ET":
            state.in_text_object = False
        elif operator == b"ID":
            self._mode = _Mode.INLINE_IMAGE
            self._image_tail = b" "

        operands.clear()
        return proceed

    def _next_line(self, tx: float, ty: float) -> bool:
        state = self.state
        matrix = state.matrix
        matrix[4] += tx * matrix[0] + ty * matrix[2]
        matrix[5] += tx * matrix[1] + ty * matrix[3]
        state.last_translation = tx
        state.last_position = (matrix[4], matrix[5])
        if ty != 0.0:
            return self._line_break(_NEWLINE)
        if tx > 0.0 and state.char_spacing >= 0.0:
            return self._line_break(_SPACE)
        state.shown_since_position = False
        return True

    def _set_matrix(self, values: list[float]) -> bool:
        state = self.state
        previous = state.last_position
        shown = state.shown_since_position
        state.matrix = values
        state.last_translation = values[4]
        state.last_position = (values[4], values[5])
        if previous is None or not shown:
            return True
        if values[5] != previous[1]:
            return self._line_break(_NEWLINE)
        if values[4] > previous[0]:
            return self._line_break(_SPACE)
        return True

    def _kerning(self, adjustment: float) -> bool:
        """Estimate the advance of a ``TJ`` adjustment and break words on wide gaps."""

        state = self.state
        scale = abs(state.matrix[0]) or 1.0
        tx = (
            -adjustment / 1000.0 * state.font_size + state.char_spacing + state.word_spacing
        ) * state.horizontal_scale
        before = state.running_offset
        state.running_offset += tx * scale
        threshold = WORD_GAP_RATIO * state.font_size * state.horizontal_scale * scale
        # One space per gap: only the adjustment that crosses the threshold breaks.
        if state.in_text_object and threshold > 0.0 and before < threshold <= state.running_offset:
            return self._line_break(_SPACE)
        return True

    # -- Output -------------------------------------------------------------

    def _emit_text(self, byte: int) -> bool:
        state = self.state
        state.shown_text = True
        state.shown_since_position = True
        state.running_offset = 0.0
        return self.sink.emit(byte)

    def _line_break(self, byte: int) -> bool:
        state = self.state
        if not state.shown_text:
            return True
        state.shown_since_position = False
        return self.sink.emit(byte)
