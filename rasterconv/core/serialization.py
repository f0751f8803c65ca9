"""Container header serialization and data-segment reconciliation.

ProPra header (28 bytes, little-endian):
  - Magic: 10 bytes ASCII ('ProPraWS19')
  - Width, height: 2 bytes each
  - Pixel depth: 1 byte (24)
  - Compression: 1 byte (0 uncompressed, 1 RLE, 2 Huffman)
  - Data segment size: 8 bytes
  - Checksum: 4 bytes

TGA header (18 bytes, little-endian):
  - ID length, color map type, image type (2 uncompressed, 10 RLE): 1 byte each
  - Color map specification: 5 bytes (unused, zero)
  - X origin, y origin, width, height: 2 bytes each
  - Pixel depth: 1 byte (24)
  - Image descriptor: 1 byte (0x20, origin top left)

The ProPra size and checksum are unknown until the body has been written,
so the header is first written with zeros and patched afterwards with
:func:`patch_propra_header`.
"""

from __future__ import annotations

import struct
from typing import BinaryIO, ClassVar, Literal, Union

from pydantic import BaseModel, Field

from rasterconv.codec.checksum import SegmentTally
from rasterconv.codec.pixel import PixelOrder
from rasterconv.codec.rows import Compression
from rasterconv.errors import (
    ChecksumMismatchError,
    HeaderInvalidError,
    SizeMismatchError,
    TrailingDataError,
)

PROPRA_MAGIC = b"ProPraWS19"
PROPRA_FORMAT = "<10sHHBBQI"
PROPRA_HEADER_SIZE = struct.calcsize(PROPRA_FORMAT)  # 28
PROPRA_PATCH_OFFSET = 0x10
PROPRA_PATCH_FORMAT = "<QI"

TGA_FORMAT = "<BBBHHBHHHHBB"
TGA_HEADER_SIZE = struct.calcsize(TGA_FORMAT)  # 18
TGA_TYPE_UNCOMPRESSED = 2
TGA_TYPE_RLE = 10
TGA_RLE_FLAG = 0x08
TGA_DESCRIPTOR_TOP_LEFT = 0x20

PIXEL_DEPTH = 24


def _check_common(width: int, height: int, pixel_depth: int) -> None:
    if width == 0:
        raise HeaderInvalidError("Invalid image dimensions. Width of 0 is not allowed.")
    if height == 0:
        raise HeaderInvalidError("Invalid image dimensions. Height of 0 is not allowed.")
    if pixel_depth != PIXEL_DEPTH:
        raise HeaderInvalidError(
            f"Unsupported pixel depth. Supported: {PIXEL_DEPTH}, found: {pixel_depth}."
        )


class ProPraHeader(BaseModel):
    """ProPra container header.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        pixel_depth: Bits per pixel (must be 24)
        compression: Compression mode of the data segment
        data_segment_size: Declared data segment length in bytes
        checksum: Declared data segment checksum
    """

    format: Literal["propra"] = "propra"
    width: int = Field(ge=0, le=0xFFFF)
    height: int = Field(ge=0, le=0xFFFF)
    pixel_depth: int = PIXEL_DEPTH
    compression: Compression = Compression.UNCOMPRESSED
    data_segment_size: int = Field(default=0, ge=0)
    checksum: int = Field(default=0, ge=0, le=0xFFFFFFFF)

    HEADER_SIZE: ClassVar[int] = PROPRA_HEADER_SIZE
    PIXEL_ORDER: ClassVar[PixelOrder] = PixelOrder.GBR
    ALLOWS_TRAILING_DATA: ClassVar[bool] = False

    def pack(self) -> bytes:
        """Serialize the header to its 28-byte form."""
        return struct.pack(
            PROPRA_FORMAT,
            PROPRA_MAGIC,
            self.width,
            self.height,
            self.pixel_depth,
            int(self.compression),
            self.data_segment_size,
            self.checksum,
        )

    @classmethod
    def unpack(cls, data: bytes) -> ProPraHeader:
        """Parse and validate a ProPra header.

        Raises:
            HeaderInvalidError: If the header is short or invalid
        """
        if len(data) < PROPRA_HEADER_SIZE:
            raise HeaderInvalidError(
                f"Header too short: need {PROPRA_HEADER_SIZE} bytes, got {len(data)}"
            )
        magic, width, height, depth, code, size, checksum = struct.unpack(
            PROPRA_FORMAT, data[:PROPRA_HEADER_SIZE]
        )
        if magic != PROPRA_MAGIC:
            raise HeaderInvalidError(
                f"Invalid file format: expected {PROPRA_MAGIC!r}, got {magic!r}"
            )
        _check_common(width, height, depth)
        try:
            compression = Compression(code)
        except ValueError as e:
            raise HeaderInvalidError(
                f"Unsupported compression code {code}. Supported: 0, 1 or 2."
            ) from e
        return cls(
            width=width,
            height=height,
            pixel_depth=depth,
            compression=compression,
            data_segment_size=size,
            checksum=checksum,
        )


class TGAHeader(BaseModel):
    """TGA container header (24-bit true color, top-left origin only).

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        pixel_depth: Bits per pixel (must be 24)
        compression: UNCOMPRESSED (image type 2) or RLE (image type 10)
        x_origin: Must be 0
        y_origin: Must equal height
        descriptor: Image descriptor, must be 0x20
    """

    format: Literal["tga"] = "tga"
    width: int = Field(ge=0, le=0xFFFF)
    height: int = Field(ge=0, le=0xFFFF)
    pixel_depth: int = PIXEL_DEPTH
    compression: Compression = Compression.UNCOMPRESSED
    x_origin: int = 0
    y_origin: int | None = None
    descriptor: int = TGA_DESCRIPTOR_TOP_LEFT

    HEADER_SIZE: ClassVar[int] = TGA_HEADER_SIZE
    PIXEL_ORDER: ClassVar[PixelOrder] = PixelOrder.BGR
    ALLOWS_TRAILING_DATA: ClassVar[bool] = True

    @property
    def image_type(self) -> int:
        if self.compression is Compression.RLE:
            return TGA_TYPE_RLE
        if self.compression is Compression.UNCOMPRESSED:
            return TGA_TYPE_UNCOMPRESSED
        raise ValueError("TGA supports only uncompressed or RLE compression")

    def pack(self) -> bytes:
        """Serialize the header to its 18-byte form."""
        y_origin = self.height if self.y_origin is None else self.y_origin
        return struct.pack(
            TGA_FORMAT,
            0,  # ID length
            0,  # Color map type
            self.image_type,
            0,  # Color map first entry
            0,  # Color map length
            0,  # Color map entry size
            self.x_origin,
            y_origin,
            self.width,
            self.height,
            self.pixel_depth,
            self.descriptor,
        )

    @classmethod
    def unpack(cls, data: bytes) -> TGAHeader:
        """Parse and validate a TGA header.

        Raises:
            HeaderInvalidError: If the header is short, invalid or unsupported
        """
        if len(data) < TGA_HEADER_SIZE:
            raise HeaderInvalidError(
                f"Header too short: need {TGA_HEADER_SIZE} bytes, got {len(data)}"
            )
        (
            id_length,
            _cmap_type,
            image_type,
            _cmap_start,
            _cmap_length,
            _cmap_depth,
            x_origin,
            y_origin,
            width,
            height,
            depth,
            descriptor,
        ) = struct.unpack(TGA_FORMAT, data[:TGA_HEADER_SIZE])

        if id_length != 0:
            raise HeaderInvalidError(
                f"Unsupported image ID length. Supported: 0, found: {id_length}."
            )
        if image_type not in (TGA_TYPE_UNCOMPRESSED, TGA_TYPE_RLE):
            raise HeaderInvalidError(
                f"Unsupported image type. Supported: 2 or 10, found: {image_type}."
            )
        _check_common(width, height, depth)
        if descriptor != TGA_DESCRIPTOR_TOP_LEFT or x_origin != 0 or y_origin != height:
            raise HeaderInvalidError("Origin of image has to be at the top left corner.")

        compression = Compression.RLE if image_type & TGA_RLE_FLAG else Compression.UNCOMPRESSED
        return cls(
            width=width,
            height=height,
            pixel_depth=depth,
            compression=compression,
            x_origin=x_origin,
            y_origin=y_origin,
            descriptor=descriptor,
        )


ContainerHeader = Union[ProPraHeader, TGAHeader]

HEADER_TYPES: dict[str, type[ProPraHeader] | type[TGAHeader]] = {
    "propra": ProPraHeader,
    "tga": TGAHeader,
}


def read_header(stream: BinaryIO, fmt: str) -> ContainerHeader:
    """Read and validate the header of a ``fmt`` container from ``stream``.

    Raises:
        HeaderInvalidError: If the header is short or invalid
    """
    header_type = HEADER_TYPES[fmt]
    size = header_type.HEADER_SIZE
    data = stream.read(size)
    if len(data) != size:
        raise HeaderInvalidError(
            f"Amount of bytes read does not correspond to header size. "
            f"Expected {size}, read {len(data)} bytes."
        )
    return header_type.unpack(data)


def patch_propra_header(stream: BinaryIO, data_segment_size: int, checksum: int) -> None:
    """Overwrite the size and checksum fields of a written ProPra header.

    Only bytes 0x10-0x1B are touched. ``stream`` must be seekable and
    opened for writing, with the body already complete.
    """
    if data_segment_size < 0:
        raise ValueError(f"data_segment_size must be non-negative, got {data_segment_size}")
    stream.seek(PROPRA_PATCH_OFFSET)
    stream.write(struct.pack(PROPRA_PATCH_FORMAT, data_segment_size, checksum & 0xFFFFFFFF))


def verify_segment(header: ProPraHeader, tally: SegmentTally) -> None:
    """Compare declared size and checksum against the values recomputed while reading.

    Raises:
        ChecksumMismatchError: If the checksums differ
        SizeMismatchError: If the data segment sizes differ
    """
    actual_checksum = tally.checksum.value()
    if header.checksum != actual_checksum:
        raise ChecksumMismatchError(header.checksum, actual_checksum)
    if header.data_segment_size != tally.size:
        raise SizeMismatchError(header.data_segment_size, tally.size)


def check_trailing_data(stream: BinaryIO, header: ContainerHeader) -> None:
    """Reject bytes after the data segment where the format forbids them.

    Raises:
        TrailingDataError: If trailing bytes exist and are not allowed
    """
    if header.ALLOWS_TRAILING_DATA:
        return
    if stream.read(1):
        raise TrailingDataError(
            "Found data after the data segment in a format that does not allow it."
        )

