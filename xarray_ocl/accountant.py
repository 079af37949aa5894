"""
Per-station byte bookkeeping
"""

from __future__ import annotations

from .errors import ByteCountError


class ByteAccountant:
    """Counts the significant bytes consumed by the current station

    The first variable-length field of every station is its own total length
    (length prefix and digits included).  Until that field has been decoded
    the total is unknown and ``remaining`` is None.
    """

    def __init__(self):
        self.consumed = 0
        self.total: int | None = None

    def reset(self):
        """Forget the previous station"""
        self.consumed = 0
        self.total = None

    def start(self, total: int):
        """Set the declared station length"""
        self.total = total

    @property
    def is_started(self) -> bool:
        return self.total is not None

    def consume(self, n: int):
        self.consumed += n

    @property
    def remaining(self) -> int | None:
        """Bytes of the station not yet consumed, None before bootstrap"""
        if self.total is None:
            return None
        return self.total - self.consumed

    def check(self, strict: bool = False):
        """Validate the byte count after a fully decoded station

        Args:
            strict: Also reject stations with bytes left over

        Raises:
            ByteCountError: More bytes consumed than declared (or fewer, if strict)
        """
        remaining = self.remaining
        if remaining is None:
            raise ByteCountError("Station length was never established")
        if remaining < 0:
            raise ByteCountError(
                f"Consumed {self.consumed} bytes, station declares {self.total}"
            )
        if strict and remaining > 0:
            raise ByteCountError(
                f"{remaining} bytes left undecoded of {self.total}"
            )

    def __repr__(self):
        return f"ByteAccountant(consumed={self.consumed}, total={self.total})"
