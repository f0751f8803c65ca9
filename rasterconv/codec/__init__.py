"""Pixel-stream compression engine: pixels, checksum, bitstream, Huffman, RLE."""

from rasterconv.codec.checksum import Checksum, SegmentTally
from rasterconv.codec.huffman import HuffmanTree, histogram
from rasterconv.codec.pixel import BYTES_PER_PIXEL, Pixel, PixelOrder
from rasterconv.codec.rows import Compression, RowDecoder, RowEncoder

__all__ = [
    "BYTES_PER_PIXEL",
    "Checksum",
    "Compression",
    "HuffmanTree",
    "Pixel",
    "PixelOrder",
    "RowDecoder",
    "RowEncoder",
    "SegmentTally",
    "histogram",
]
