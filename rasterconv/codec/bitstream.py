"""Bit-granular stream used by the Huffman data segment.

The writer collects bit strings and emits whole bytes as soon as eight
bits are pending. The reader keeps a small queue of unconsumed bits and
refills it one byte at a time. Every byte crossing either side is fed to
the side's :class:`~rasterconv.codec.checksum.SegmentTally`.
"""

from __future__ import annotations

from typing import BinaryIO

from rasterconv.codec.checksum import SegmentTally
from rasterconv.errors import TruncatedError

# Refill threshold for the read queue, in bits.
REFILL_BELOW = 16


class BitWriter:
    """Accumulates bits and turns them into bytes.

    Example:
        >>> writer = BitWriter(SegmentTally())
        >>> writer.write("1010")
        b''
        >>> writer.write("11110000")
        b'\\xaf'
        >>> writer.flush()
        b'\\x00'
    """

    def __init__(self, tally: SegmentTally) -> None:
        self.tally = tally
        self._pending = 0
        self._nbits = 0

    @property
    def pending_bits(self) -> int:
        """Number of bits written but not yet emitted as a byte."""
        return self._nbits

    def write(self, bits: str) -> bytes:
        """Append a string of ``'0'``/``'1'`` characters.

        Returns:
            Bytes completed by this call (possibly empty)
        """
        if bits:
            if bits.strip("01"):
                raise ValueError(f"Invalid bit string: {bits!r}")
            self._pending = (self._pending << len(bits)) | int(bits, 2)
            self._nbits += len(bits)
        return self._drain()

    def flush(self) -> bytes:
        """Pad with zero bits to a byte boundary and emit what is left."""
        padding = -self._nbits % 8
        self._pending <<= padding
        self._nbits += padding
        return self._drain()

    def _drain(self) -> bytes:
        out = bytearray()
        while self._nbits >= 8:
            self._nbits -= 8
            out.append((self._pending >> self._nbits) & 0xFF)
            self._pending &= (1 << self._nbits) - 1
        data = bytes(out)
        self.tally.feed(data)
        return data


class BitReader:
    """Reads bits from a byte stream, most significant bit first.

    Attributes:
        stream: Underlying binary stream positioned at the data segment
        tally: Input-side checksum and byte counter
    """

    def __init__(self, stream: BinaryIO, tally: SegmentTally) -> None:
        self.stream = stream
        self.tally = tally
        self._queue = 0
        self._nbits = 0
        self._eof = False

    @property
    def queued_bits(self) -> int:
        """Number of bits read from the stream but not yet taken."""
        return self._nbits

    @property
    def exhausted(self) -> bool:
        """True once the stream hit EOF and the queue is empty."""
        return self._eof and self._nbits == 0

    def _refill(self, need: int) -> None:
        if self._nbits < REFILL_BELOW:
            self._read_byte()
        while self._nbits < need and not self._eof:
            self._read_byte()

    def _read_byte(self) -> None:
        if self._eof:
            return
        byte = self.stream.read(1)
        if not byte:
            self._eof = True
            return
        self.tally.feed(byte)
        self._queue = (self._queue << 8) | byte[0]
        self._nbits += 8

    def take(self, n: int) -> int | None:
        """Remove and return the next ``n`` bits as an unsigned integer.

        Returns:
            The bits, or None if no bits remain at all

        Raises:
            TruncatedError: If some, but fewer than ``n``, bits remain
        """
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")
        self._refill(n)
        if n == 0:
            return 0
        if self._nbits == 0:
            return None
        if self._nbits < n:
            raise TruncatedError(
                f"Bitstream ended: needed {n} bits, only {self._nbits} left"
            )
        self._nbits -= n
        value = (self._queue >> self._nbits) & ((1 << n) - 1)
        self._queue &= (1 << self._nbits) - 1
        return value
