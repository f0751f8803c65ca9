"""Rolling checksum over a data segment.

The checksum is an Adler-like sum with modulus 65513 whose position
counter starts at 1. Its final value is truncated to 32 bits, so the
result matches a two's-complement ``int`` computed with wraparound.
"""

from __future__ import annotations

from typing import BinaryIO

from rasterconv.errors import TruncatedError

X = 65513
TWO_POW_SIXTEEN = 65536


class Checksum:
    """Stateful checksum accumulator, updated one byte at a time.

    Example:
        >>> cs = Checksum()
        >>> cs.add(0x00)
        >>> hex(cs.value())
        '0x10002'
    """

    def __init__(self) -> None:
        self.a = 0
        self.b = 1
        self.i = 1

    def add(self, byte: int) -> None:
        """Fold one unsigned byte into the checksum."""
        self.a += self.i + (byte & 0xFF)
        self.b = (self.b + self.a % X) % X
        self.i += 1

    def add_bytes(self, data: bytes) -> None:
        """Fold ``data`` into the checksum, in order."""
        for byte in data:
            self.add(byte)

    def value(self) -> int:
        """Return the current 32-bit checksum without resetting state."""
        return ((self.a % X) * TWO_POW_SIXTEEN + self.b) & 0xFFFFFFFF

    def __str__(self) -> str:
        return f"0x{self.value():08X}"

    def __repr__(self) -> str:
        return f"Checksum(a={self.a}, b={self.b}, i={self.i})"


class SegmentTally:
    """Checksum and byte counter for one side (input or output) of a pass.

    Every byte a row codec produces or consumes must be fed here, so the
    totals can be reconciled with the container header.

    Attributes:
        checksum: Running checksum of the data segment
        size: Number of data-segment bytes seen so far
    """

    def __init__(self) -> None:
        self.checksum = Checksum()
        self.size = 0

    def feed(self, data: bytes) -> None:
        """Account for ``data`` in both checksum and size."""
        self.checksum.add_bytes(data)
        self.size += len(data)

    def __repr__(self) -> str:
        return f"SegmentTally(size={self.size}, checksum={self.checksum})"

    def read(self, stream: BinaryIO, n: int, what: str = "data") -> bytes:
        """Read exactly ``n`` bytes from ``stream`` and account for them.

        Raises:
            TruncatedError: If the stream ends early
        """
        data = stream.read(n)
        self.feed(data)
        if len(data) != n:
            raise TruncatedError(
                f"Truncated {what}: expected {n} bytes, read {len(data)}"
            )
        return data
