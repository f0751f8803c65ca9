"""Row codec dispatcher.

Selects the uncompressed, RLE or Huffman row codec from the container's
declared compression and threads the side's :class:`SegmentTally`
through every call. Rows must be processed top to bottom; within a row,
bytes are produced and consumed left to right.
"""

from __future__ import annotations

from enum import IntEnum
from typing import BinaryIO

from rasterconv.codec import rle
from rasterconv.codec.bitstream import BitReader, BitWriter
from rasterconv.codec.checksum import SegmentTally
from rasterconv.codec.huffman import HuffmanTree
from rasterconv.codec.pixel import BYTES_PER_PIXEL, Pixel, PixelOrder, pixels_from_bytes


class Compression(IntEnum):
    """Compression modes; values are the ProPra header codes."""

    UNCOMPRESSED = 0
    RLE = 1
    HUFFMAN = 2

    @classmethod
    def parse(cls, value: str | int | Compression) -> Compression:
        """Accept an enum member, a header code, or a name such as ``'rle'``."""
        if isinstance(value, Compression):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError as e:
                raise ValueError(f"Unknown compression code: {value}") from e
        try:
            return cls[value.strip().upper()]
        except KeyError as e:
            raise ValueError(f"Unknown compression: {value!r}") from e


class RowEncoder:
    """Encodes rows for one output data segment.

    Attributes:
        compression: Mode used for every row
        order: Pixel byte order of the target container
        tree: Huffman tree (required for HUFFMAN), built over all pixel bytes
    """

    def __init__(
        self,
        compression: Compression,
        order: PixelOrder,
        tree: HuffmanTree | None = None,
    ) -> None:
        self.compression = Compression.parse(compression)
        self.order = order
        self.tree = tree
        if self.compression is Compression.HUFFMAN and tree is None:
            raise ValueError("Huffman compression requires a tree")
        self._writer: BitWriter | None = None
        self._table: dict[int, str] = {}

    def encode_row(self, pixels: list[Pixel], tally: SegmentTally) -> bytes:
        """Encode one row and fold the produced bytes into ``tally``."""
        if self.compression is Compression.UNCOMPRESSED:
            data = b"".join(p.to_bytes(self.order) for p in pixels)
            tally.feed(data)
            return data
        if self.compression is Compression.RLE:
            return rle.encode_row(pixels, self.order, tally)
        return self._encode_huffman_row(pixels, tally)

    def _encode_huffman_row(self, pixels: list[Pixel], tally: SegmentTally) -> bytes:
        out = bytearray()
        if self._writer is None:
            assert self.tree is not None
            self._writer = BitWriter(tally)
            self._table = self.tree.code_table()
            out += self._writer.write(self.tree.serialize())
        elif self._writer.tally is not tally:
            raise ValueError("Huffman rows of one segment must share a tally")

        table = self._table
        for pixel in pixels:
            for byte in pixel.to_bytes(self.order):
                try:
                    code = table[byte]
                except KeyError as e:
                    raise ValueError(
                        f"Byte 0x{byte:02X} missing from the Huffman code table"
                    ) from e
                out += self._writer.write(code)
        return bytes(out)

    def finish(self, tally: SegmentTally) -> bytes:
        """Flush pending Huffman bits; other modes have nothing pending."""
        if self.compression is not Compression.HUFFMAN:
            return b""
        if self._writer is None:
            # No row was encoded; the segment still carries the tree.
            return self._encode_huffman_row([], tally) + self.finish(tally)
        return self._writer.flush()


class RowDecoder:
    """Decodes rows from one input data segment.

    The Huffman tree is parsed lazily, before the first row.
    """

    def __init__(self, compression: Compression, order: PixelOrder) -> None:
        self.compression = Compression.parse(compression)
        self.order = order
        self.tree: HuffmanTree | None = None
        self._reader: BitReader | None = None

    def decode_row(
        self, stream: BinaryIO, width: int, tally: SegmentTally
    ) -> list[Pixel]:
        """Decode ``width`` pixels, folding consumed bytes into ``tally``.

        Raises:
            TruncatedError: If the stream ends before the row is complete
            TreeIncompleteError: If the Huffman tree cannot be read
        """
        if width <= 0:
            raise ValueError(f"width must be positive, got {width}")
        if self.compression is Compression.UNCOMPRESSED:
            data = tally.read(stream, width * BYTES_PER_PIXEL, "uncompressed row")
            return pixels_from_bytes(data, self.order)
        if self.compression is Compression.RLE:
            return rle.decode_row(stream, width, self.order, tally)
        return self._decode_huffman_row(stream, width, tally)

    def _decode_huffman_row(
        self, stream: BinaryIO, width: int, tally: SegmentTally
    ) -> list[Pixel]:
        if self._reader is None:
            self._reader = BitReader(stream, tally)
            self.tree = HuffmanTree.read(self._reader)
        assert self.tree is not None

        row: list[Pixel] = []
        for _ in range(width):
            data = bytes(
                self.tree.decode_symbol(self._reader) for _ in range(BYTES_PER_PIXEL)
            )
            row.append(Pixel.from_bytes(data, self.order))
        return row
