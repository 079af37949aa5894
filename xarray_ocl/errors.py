"""Error codes and exception classes for OCL decoding."""

from __future__ import annotations

OCL_ERROR_MALFORMED_FIELD = 1
OCL_ERROR_UNEXPECTED_EOF = 2
OCL_ERROR_BYTE_COUNT = 3
OCL_ERROR_BATHYMETRY_MISMATCH = 4
OCL_ERROR_READER_HALTED = 5

_MESSAGES = {
    OCL_ERROR_MALFORMED_FIELD: "Malformed field in OCL station.",
    OCL_ERROR_UNEXPECTED_EOF: "Unexpected end of stream - empty or truncated input?",
    OCL_ERROR_BYTE_COUNT: "Station byte count does not match bytes decoded.",
    OCL_ERROR_BATHYMETRY_MISMATCH: "Bathymetry file is out of step with the station stream.",
    OCL_ERROR_READER_HALTED: "Reader halted after a fatal error.",
}


class OCLError(Exception):
    """Base class for all fatal OCL decoding problems.

    ``station_index`` is filled in by the reader once it knows which record
    was being decoded when the error surfaced.
    """

    code = OCL_ERROR_MALFORMED_FIELD

    def __init__(self, mesg=None, value=None, data=None):
        self.value = self.code if value is None else value
        self.mesg = mesg
        self.data = data
        self.station_index: int | None = None
        super().__init__(mesg)

    def __str__(self):
        mesg = _MESSAGES.get(self.value, f"Undefined error. ({self.value})")
        if self.mesg:
            mesg = " ".join((mesg, self.mesg))
        if self.station_index is not None:
            mesg = f"{mesg} (station {self.station_index})"
        return mesg


class MalformedFieldError(OCLError):
    code = OCL_ERROR_MALFORMED_FIELD


class UnexpectedEndOfStreamError(OCLError):
    code = OCL_ERROR_UNEXPECTED_EOF


class ByteCountError(OCLError):
    code = OCL_ERROR_BYTE_COUNT


class BathymetryMismatchError(OCLError):
    code = OCL_ERROR_BATHYMETRY_MISMATCH


class ReaderHaltedError(OCLError):
    code = OCL_ERROR_READER_HALTED
