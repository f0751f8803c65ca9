"""Arena allocator and RasterRef handles for decoded pixel data.

The Arena owns one contiguous bytearray and hands out rasters with a bump
pointer. RasterRefs are lightweight handles (offset, shape, generation)
into the arena, so components can carry image data without copying it.

Key Features:
- Zero-copy: components store RasterRefs, views are NumPy arrays over the buffer
- Row handles: ``ref.row(y)`` addresses a single scanline
- Generation counter: detects stale RasterRefs after arena reset

Example:
    >>> arena = Arena(size_bytes=1024)
    >>> ref = arena.alloc_raster(4, 8)
    >>> arena.view(ref)[:] = 255
    >>> arena.view(ref.row(2)).shape
    (8, 3)
    >>> arena.reset()  # arena.view(ref) now raises ValueError
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

CHANNELS = 3


@dataclass(frozen=True)
class RasterRef:
    """Handle pointing to uint8 pixel data in an Arena.

    Attributes:
        offset: Byte offset into arena buffer
        shape: (height, width, 3) for a raster, (width, 3) for a row
        generation: Arena generation counter (for staleness detection)
    """

    offset: int
    shape: tuple[int, ...]
    generation: int

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError(f"offset must be non-negative, got {self.offset}")
        if len(self.shape) not in (2, 3) or self.shape[-1] != CHANNELS:
            raise ValueError(
                f"shape must be (H, W, {CHANNELS}) or (W, {CHANNELS}), got {self.shape}"
            )
        if self.generation < 0:
            raise ValueError(f"generation must be non-negative, got {self.generation}")

    @property
    def height(self) -> int:
        return self.shape[0] if len(self.shape) == 3 else 1

    @property
    def width(self) -> int:
        return self.shape[-2]

    @property
    def nbytes(self) -> int:
        return int(np.prod(self.shape))

    def row(self, y: int) -> RasterRef:
        """Handle for scanline ``y`` of this raster.

        Raises:
            IndexError: If ``y`` is out of range
            ValueError: If this handle is already a row
        """
        if len(self.shape) != 3:
            raise ValueError("row() requires a (H, W, 3) raster handle")
        if y < 0:
            y += self.height
        if not 0 <= y < self.height:
            raise IndexError(f"Row {y} out of bounds for height {self.height}")
        row_bytes = self.width * CHANNELS
        return RasterRef(
            offset=self.offset + y * row_bytes,
            shape=(self.width, CHANNELS),
            generation=self.generation,
        )


class Arena:
    """Contiguous pixel memory with bump allocation.

    Attributes:
        size: Total arena size in bytes
        offset: Current allocation offset (bump pointer)
        generation: Incremented on reset() to invalidate old RasterRefs
    """

    def __init__(self, size_bytes: int):
        if size_bytes <= 0:
            raise ValueError(f"size_bytes must be positive, got {size_bytes}")

        self._buffer = bytearray(size_bytes)
        self._size = size_bytes
        self._offset = 0
        self._generation = 0

    @property
    def size(self) -> int:
        return self._size

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def available(self) -> int:
        return self._size - self._offset

    def reset(self) -> None:
        """Reset arena for reuse. Invalidates all existing RasterRefs."""
        self._offset = 0
        self._generation += 1

    def alloc_raster(self, height: int, width: int) -> RasterRef:
        """Reserve space for a (height, width, 3) uint8 raster.

        Raises:
            ValueError: If dimensions are not positive or the arena is full
        """
        if height <= 0 or width <= 0:
            raise ValueError(f"Raster dimensions must be positive, got {height}x{width}")

        nbytes = height * width * CHANNELS
        if nbytes > self.available:
            raise ValueError(
                f"Arena out of memory: need {nbytes} bytes at offset {self._offset}, "
                f"but arena size is {self._size} (available: {self.available})"
            )

        ref = RasterRef(
            offset=self._offset,
            shape=(height, width, CHANNELS),
            generation=self._generation,
        )
        self._offset += nbytes
        return ref

    def view(self, ref: RasterRef) -> np.ndarray:
        """Return a writable uint8 NumPy view of ``ref`` (zero-copy).

        Raises:
            ValueError: If the RasterRef is stale or out of bounds
        """
        if ref.generation != self._generation:
            raise ValueError(
                f"Stale RasterRef: arena was reset (current generation {self._generation}, "
                f"ref is from generation {ref.generation})"
            )
        if ref.offset + ref.nbytes > self._size:
            raise ValueError(
                f"RasterRef out of bounds: offset={ref.offset}, nbytes={ref.nbytes}, "
                f"arena size={self._size}"
            )
        return np.ndarray(
            shape=ref.shape, dtype=np.uint8, buffer=self._buffer, offset=ref.offset
        )

    def copy_raster(self, img: np.ndarray) -> RasterRef:
        """Allocate a raster and copy ``img`` (H, W, 3) into it."""
        if img.ndim != 3 or img.shape[2] != CHANNELS:
            raise ValueError(f"Expected image with shape (H, W, 3), got {img.shape}")
        ref = self.alloc_raster(img.shape[0], img.shape[1])
        self.view(ref)[:] = img
        return ref

    def __repr__(self) -> str:
        return (
            f"Arena(size={self._size}, offset={self._offset}, "
            f"generation={self._generation}, available={self.available})"
        )
