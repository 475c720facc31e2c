"""A buffered JSON output stream with typed write methods."""

from __future__ import annotations

import math
import re
import struct
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, BinaryIO, Optional, Union

__all__ = ["UnsupportedValueError", "StreamConfig", "Stream"]

_HEX = "0123456789abcdef"

_PLAIN_UNSAFE = re.compile(rb'[\x00-\x1f"\\]')
_HTML_UNSAFE = re.compile('[\x00-\x1f"\\\\<>&\u2028\u2029\udc80-\udcff]')

_SIMPLE_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

_INT_LIMITS = {
    (8, True): (-(1 << 7), (1 << 7) - 1),
    (16, True): (-(1 << 15), (1 << 15) - 1),
    (32, True): (-(1 << 31), (1 << 31) - 1),
    (64, True): (-(1 << 63), (1 << 63) - 1),
    (8, False): (0, (1 << 8) - 1),
    (16, False): (0, (1 << 16) - 1),
    (32, False): (0, (1 << 32) - 1),
    (64, False): (0, (1 << 64) - 1),
}

_LOSSY_PRECISION = 6
_LOSSY_SCALE = 10**_LOSSY_PRECISION
_LOSSY_LIMIT = 0x4FFFFFF


class UnsupportedValueError(ValueError):
    """Raised when a value has no JSON representation, such as NaN or infinity."""


@dataclass(frozen=True)
class StreamConfig:
    """Settings that shape the output of a stream."""

    indention_step: int = 0


def _to_float32(val: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", val))[0]
    except OverflowError:
        return math.copysign(math.inf, val)


def _go_float_repr(val: float) -> str:
    if math.isnan(val):
        return "NaN"
    if math.isinf(val):
        return "+Inf" if val > 0 else "-Inf"
    return f"{val:f}"


def _check_finite(val: float) -> None:
    if math.isinf(val) or math.isnan(val):
        raise UnsupportedValueError(f"unsupported value: {_go_float_repr(val)}")


def _shortest_decimal32(val: float) -> Decimal:
    for precision in range(9):
        text = f"{val:.{precision}e}"
        if _to_float32(float(text)) == val:
            return Decimal(text).normalize()
    return Decimal(f"{val:.8e}").normalize()


def _format_decimal(value: Decimal, exponential: bool) -> str:
    value = value.normalize()
    if not exponential:
        return format(value, "f")
    sign, digits, exp = value.as_tuple()
    exponent = exp + len(digits) - 1
    text = "".join(map(str, digits))
    mantissa = text[0] + ("." + text[1:] if len(text) > 1 else "")
    suffix = f"e-{-exponent}" if exponent < 0 else f"e+{exponent:02d}"
    return ("-" if sign else "") + mantissa + suffix


def _escape_plain(match: "re.Match[bytes]") -> bytes:
    char = match.group().decode("ascii")
    escaped = _SIMPLE_ESCAPES.get(char)
    if escaped is None:
        code = ord(char)
        escaped = "\\u00" + _HEX[code >> 4] + _HEX[code & 0xF]
    return escaped.encode("ascii")


def _escape_html(match: "re.Match[str]") -> str:
    char = match.group()
    escaped = _SIMPLE_ESCAPES.get(char)
    if escaped is not None:
        return escaped
    code = ord(char)
    if 0xDC80 <= code <= 0xDCFF:
        return "\\ufffd"
    if code in (0x2028, 0x2029):
        return "\\u202" + _HEX[code & 0xF]
    return "\\u00" + _HEX[code >> 4] + _HEX[code & 0xF]


def _as_bytes(s: Union[str, bytes]) -> bytes:
    if isinstance(s, (bytes, bytearray)):
        return bytes(s)
    return s.encode("utf-8", "surrogatepass")


class Stream:
    """Collects JSON text in a buffer and optionally flushes it to a binary writer."""

    def __init__(
        self,
        config: Optional[StreamConfig] = None,
        out: Optional[BinaryIO] = None,
        buf_size: int = 512,
    ) -> None:
        self.config = config if config is not None else StreamConfig()
        self.out = out
        self.attachment: Any = None
        self._buf = bytearray()
        self._capacity = max(buf_size, 0)
        self._indention = 0

    # buffer management

    def reset(self, out: Optional[BinaryIO]) -> None:
        """Reuse the stream with a new writer, discarding buffered output."""
        self.out = out
        self._buf.clear()

    def available(self) -> int:
        """Number of unused bytes in the buffer's current capacity."""
        self._capacity = max(self._capacity, len(self._buf))
        return self._capacity - len(self._buf)

    def buffered(self) -> int:
        """Number of bytes written into the buffer and not yet flushed."""
        return len(self._buf)

    def buffer(self) -> bytes:
        """The bytes currently held in the buffer."""
        return bytes(self._buf)

    def set_buffer(self, buf: bytes) -> None:
        """Replace the buffer contents."""
        self._buf = bytearray(buf)

    def write(self, data: bytes) -> int:
        """Append raw bytes; with a writer attached, pass the buffer on at once."""
        self._buf += data
        if self.out is None:
            return len(data)
        written = self.out.write(bytes(self._buf))
        if written is None:
            written = len(self._buf)
        del self._buf[:written]
        return written

    def flush(self) -> None:
        """Write buffered bytes to the attached writer and empty the buffer."""
        if self.out is None:
            return
        self._capacity = max(self._capacity, len(self._buf))
        self.out.write(bytes(self._buf))
        self._buf.clear()

    # literals and structure

    def write_raw(self, s: Union[str, bytes]) -> None:
        """Append text as it is, without quoting or escaping."""
        self._buf += _as_bytes(s)

    def write_nil(self) -> None:
        self._buf += b"null"

    def write_true(self) -> None:
        self._buf += b"true"

    def write_false(self) -> None:
        self._buf += b"false"

    def write_bool(self, val: bool) -> None:
        if val:
            self.write_true()
        else:
            self.write_false()

    def write_object_start(self) -> None:
        self._indention += self.config.indention_step
        self._buf += b"{"
        self._write_indention(0)

    def write_object_field(self, field: Union[str, bytes]) -> None:
        self.write_string(field)
        self._buf += b": " if self._indention > 0 else b":"

    def write_object_end(self) -> None:
        self._write_indention(self.config.indention_step)
        self._indention -= self.config.indention_step
        self._buf += b"}"

    def write_empty_object(self) -> None:
        self._buf += b"{}"

    def write_more(self) -> None:
        self._buf += b","
        self._write_indention(0)

    def write_array_start(self) -> None:
        self._indention += self.config.indention_step
        self._buf += b"["
        self._write_indention(0)

    def write_empty_array(self) -> None:
        self._buf += b"[]"

    def write_array_end(self) -> None:
        self._write_indention(self.config.indention_step)
        self._indention -= self.config.indention_step
        self._buf += b"]"

    def _write_indention(self, delta: int) -> None:
        if self._indention == 0:
            return
        self._buf += b"\n" + b" " * max(self._indention - delta, 0)

    # integers

    def _write_integer(self, val: int, bits: int, signed: bool) -> None:
        low, high = _INT_LIMITS[(bits, signed)]
        val = int(val)
        if not low <= val <= high:
            kind = "int" if signed else "uint"
            raise ValueError(f"{val} does not fit in {kind}{bits}")
        self._buf += str(val).encode("ascii")

    def write_int8(self, val: int) -> None:
        self._write_integer(val, 8, True)

    def write_int16(self, val: int) -> None:
        self._write_integer(val, 16, True)

    def write_int32(self, val: int) -> None:
        self._write_integer(val, 32, True)

    def write_int64(self, val: int) -> None:
        self._write_integer(val, 64, True)

    def write_int(self, val: int) -> None:
        self._write_integer(val, 64, True)

    def write_uint8(self, val: int) -> None:
        self._write_integer(val, 8, False)

    def write_uint16(self, val: int) -> None:
        self._write_integer(val, 16, False)

    def write_uint32(self, val: int) -> None:
        self._write_integer(val, 32, False)

    def write_uint64(self, val: int) -> None:
        self._write_integer(val, 64, False)

    def write_uint(self, val: int) -> None:
        self._write_integer(val, 64, False)

    # floats

    def write_float32(self, val: float) -> None:
        """Write the shortest text that reads back as the same 32-bit float."""
        val = _to_float32(float(val))
        _check_finite(val)
        magnitude = abs(val)
        exponential = magnitude != 0 and (
            magnitude < _to_float32(1e-6) or magnitude >= _to_float32(1e21)
        )
        self._buf += _format_decimal(_shortest_decimal32(val), exponential).encode("ascii")

    def write_float64(self, val: float) -> None:
        """Write the shortest text that reads back as the same 64-bit float."""
        val = float(val)
        _check_finite(val)
        magnitude = abs(val)
        exponential = magnitude != 0 and (magnitude < 1e-6 or magnitude >= 1e21)
        self._buf += _format_decimal(Decimal(repr(val)), exponential).encode("ascii")

    def _write_lossy(self, val: float, exact_writer) -> None:
        if val < 0:
            self._buf += b"-"
            val = -val
        if val > _LOSSY_LIMIT:
            exact_writer(val)
            return
        scaled = int(val * _LOSSY_SCALE + 0.5)
        whole, fraction = divmod(scaled, _LOSSY_SCALE)
        self._buf += str(whole).encode("ascii")
        if fraction == 0:
            return
        digits = f"{fraction:0{_LOSSY_PRECISION}d}".rstrip("0")
        self._buf += b"." + digits.encode("ascii")

    def write_float32_lossy(self, val: float) -> None:
        """Write a 32-bit float rounded to six fractional digits."""
        val = _to_float32(float(val))
        _check_finite(val)
        self._write_lossy(val, self.write_float32)

    def write_float64_lossy(self, val: float) -> None:
        """Write a 64-bit float rounded to six fractional digits."""
        val = float(val)
        _check_finite(val)
        self._write_lossy(val, self.write_float64)

    # strings

    def write_string(self, s: Union[str, bytes]) -> None:
        """Write a quoted string, escaping only what JSON requires."""
        data = _as_bytes(s)
        self._buf += b'"' + _PLAIN_UNSAFE.sub(_escape_plain, data) + b'"'

    def write_string_with_html_escaped(self, s: Union[str, bytes]) -> None:
        """Write a quoted string that is also safe inside HTML script tags."""
        text = _as_bytes(s).decode("utf-8", "surrogateescape")
        escaped = _HTML_UNSAFE.sub(_escape_html, text)
        self._buf += b'"' + escaped.encode("utf-8") + b'"'