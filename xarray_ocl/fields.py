"""
Primitive field decoding for OCL station records

OCL stations are ASCII digit streams.  Three field shapes occur:

- fixed width digit fields (``read_digits``)
- variable length integers: one length digit followed by that many digits
- variable length floats: significant-digit count, total-digit count and
  precision digits followed by the mantissa

Newline and carriage return characters may appear anywhere, including inside
a field; they are padding and are never counted as data.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import BinaryIO, NamedTuple

from .accountant import ByteAccountant
from .errors import MalformedFieldError, UnexpectedEndOfStreamError

MISSING_INT = -1
MISSING_FLOAT = math.nan

_PADDING = b"\r\n"


class FieldStatus(Enum):
    OK = "ok"
    MISSING = "missing"
    EMPTY = "empty"  # float written with zero digits; its error flag still follows


class FieldResult(NamedTuple):
    """Outcome of decoding one field

    ``MISSING`` is the zero-length sentinel of the format: the value was
    intentionally left out and nothing else of it is stored.  ``EMPTY`` is a
    float whose digit count is zero; it has no value but is otherwise a
    complete field.  Fatal problems are raised, never returned.
    """

    status: FieldStatus
    value: int | float | None = None

    @property
    def ok(self) -> bool:
        return self.status is FieldStatus.OK

    @property
    def missing(self) -> bool:
        return self.status is FieldStatus.MISSING

    def value_or(self, default):
        return self.value if self.status is FieldStatus.OK else default


MISSING = FieldResult(FieldStatus.MISSING)


class FieldReader:
    """Cursor over an OCL byte stream

    Every significant byte read is charged to ``accountant`` so that the
    station decoder always knows how much of the current station is left.
    """

    def __init__(
        self,
        fp: BinaryIO,
        accountant: ByteAccountant | None = None,
        buffer_size: int = 65536,
    ):
        """
        Args:
            fp: Binary stream positioned at the start of a station
            accountant: Byte accountant to charge (a fresh one if None)
            buffer_size: Bytes pulled from ``fp`` per read
        """
        self.fp = fp
        self.accountant = accountant if accountant is not None else ByteAccountant()
        self.buffer_size = buffer_size
        self.buffer = b""
        self.buffer_pos = 0
        self.offset = 0  # raw bytes taken from fp, padding included
        self.eof = False

    # -- buffering ---------------------------------------------------------

    def _fill(self) -> bool:
        """Refill the buffer, False at end of stream"""
        if self.eof:
            return False
        data = self.fp.read(self.buffer_size)
        if not data:
            self.eof = True
            return False
        self.buffer = data
        self.buffer_pos = 0
        return True

    def _available(self) -> bool:
        return self.buffer_pos < len(self.buffer) or self._fill()

    def _take(self, n: int, what: str, keep: bool = True) -> bytes:
        """Collect ``n`` significant bytes, dropping padding"""
        out = bytearray()
        need = n
        while need > 0:
            if not self._available():
                raise UnexpectedEndOfStreamError(
                    f"End of stream reading {what} ({n - need} of {n} bytes) "
                    f"at offset {self.offset}"
                )
            chunk = self.buffer[self.buffer_pos:self.buffer_pos + need]
            self.buffer_pos += len(chunk)
            self.offset += len(chunk)
            if b"\n" in chunk or b"\r" in chunk:
                chunk = chunk.replace(b"\n", b"").replace(b"\r", b"")
            need -= len(chunk)
            if keep:
                out += chunk
        self.accountant.consume(n)
        return bytes(out)

    # -- primitive fields --------------------------------------------------

    def read_digits(self, n: int, what: str = "field") -> FieldResult:
        """Read a fixed width integer field of ``n`` significant characters

        Returns MISSING for ``n == 0`` and for a lone ``-`` when ``n == 1``.

        Raises:
            UnexpectedEndOfStreamError: Stream ended inside the field
            MalformedFieldError: Last character is not a digit
        """
        if n == 0:
            return MISSING
        text = self._take(n, what)
        if n == 1 and text == b"-":
            return MISSING
        if not text[-1:].isdigit():
            raise MalformedFieldError(f"{what} {text!r} at offset {self.offset}")
        try:
            return FieldResult(FieldStatus.OK, int(text))
        except ValueError:
            raise MalformedFieldError(
                f"{what} {text!r} at offset {self.offset}"
            ) from None

    def read_varlen_int(self, what: str = "integer field") -> FieldResult:
        """Read a length-prefixed integer

        The first such field of a station is the station's own byte count and
        bootstraps the accountant.
        """
        prefix = self.read_digits(1, f"{what} length")
        if prefix.missing:
            return MISSING
        result = self.read_digits(prefix.value, what)
        if result.missing:
            return MISSING
        if not self.accountant.is_started:
            self.accountant.start(result.value)
        return result

    def read_varlen_float(self, what: str = "float field") -> FieldResult:
        """Read a self-describing fixed point number, mantissa / 10**precision"""
        significant = self.read_digits(1, f"{what} significant digits")
        if significant.missing:
            return FieldResult(FieldStatus.MISSING, MISSING_FLOAT)
        total = self.read_digits(1, f"{what} total digits")
        precision = self.read_digits(1, f"{what} precision")
        if total.missing or precision.missing:
            raise MalformedFieldError(f"{what} has no digit count or precision")
        mantissa = self.read_digits(total.value, what)
        if mantissa.missing:
            return FieldResult(FieldStatus.EMPTY, MISSING_FLOAT)
        return FieldResult(FieldStatus.OK, mantissa.value / 10.0 ** precision.value)

    # -- skipping ----------------------------------------------------------

    def skip(self, n: int, what: str = "section"):
        """Consume ``n`` significant bytes without interpreting them"""
        if n > 0:
            self._take(n, what, keep=False)

    def skip_line(self):
        """Consume the rest of the current line, newline included

        These bytes lie outside any station and are not charged.
        """
        while self._available():
            idx = self.buffer.find(b"\n", self.buffer_pos)
            if idx >= 0:
                self.offset += idx + 1 - self.buffer_pos
                self.buffer_pos = idx + 1
                return
            self.offset += len(self.buffer) - self.buffer_pos
            self.buffer_pos = len(self.buffer)

    def at_end(self) -> bool:
        """True when nothing but padding is left in the stream"""
        while self._available():
            if self.buffer[self.buffer_pos] not in _PADDING:
                return False
            self.buffer_pos += 1
            self.offset += 1
        return True
