"""Pixel value object and channel orders.

A pixel is stored as its (r, g, b) components and converted to and from
the byte order a container uses. ProPra stores pixels as GBR, TGA as BGR.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

BYTES_PER_PIXEL = 3


class PixelOrder(Enum):
    """Channel permutation used when a pixel is read from or written to bytes."""

    RGB = "RGB"
    BGR = "BGR"
    GBR = "GBR"

    @property
    def indices(self) -> tuple[int, int, int]:
        """Positions of the stored channels within (r, g, b)."""
        rgb = "RGB"
        return tuple(rgb.index(c) for c in self.value)  # type: ignore[return-value]


@dataclass(frozen=True)
class Pixel:
    """Immutable 24-bit pixel.

    Attributes:
        r: Red component (0-255)
        g: Green component (0-255)
        b: Blue component (0-255)
    """

    r: int
    g: int
    b: int

    @classmethod
    def from_bytes(cls, data: bytes, order: PixelOrder) -> Pixel:
        """Build a pixel from three bytes stored in ``order``."""
        if len(data) != BYTES_PER_PIXEL:
            raise ValueError(f"Expected {BYTES_PER_PIXEL} bytes, got {len(data)}")
        rgb = [0, 0, 0]
        for value, channel in zip(data, order.indices):
            rgb[channel] = value
        return cls(rgb[0], rgb[1], rgb[2])

    def to_bytes(self, order: PixelOrder) -> bytes:
        """Serialize the pixel in ``order``."""
        rgb = (self.r, self.g, self.b)
        return bytes(rgb[channel] for channel in order.indices)


def pixels_from_bytes(data: bytes, order: PixelOrder) -> list[Pixel]:
    """Split a byte string into consecutive pixels."""
    if len(data) % BYTES_PER_PIXEL:
        raise ValueError(f"Byte count {len(data)} is not a multiple of {BYTES_PER_PIXEL}")
    return [
        Pixel.from_bytes(data[i : i + BYTES_PER_PIXEL], order)
        for i in range(0, len(data), BYTES_PER_PIXEL)
    ]


def pixels_to_bytes(pixels: list[Pixel], order: PixelOrder) -> bytes:
    """Concatenate pixels serialized in ``order``."""
    return b"".join(p.to_bytes(order) for p in pixels)
