"""Container decode/encode systems.

ContainerDecode reads a ProPra or TGA file row by row into a Raster.
ContainerEncode writes a Raster to a ProPra or TGA file in two phases:

1. stream a placeholder header and the body, then close the file
2. reopen the file and patch the ProPra size/checksum fields

The phases never interleave. TGA headers carry no size or checksum, so
phase 2 is skipped for them.
"""

from __future__ import annotations

import io
import logging
import os
from typing import TYPE_CHECKING, BinaryIO, Literal

import numpy as np

from rasterconv.codec.checksum import SegmentTally
from rasterconv.codec.huffman import HuffmanTree, histogram
from rasterconv.codec.pixel import Pixel, PixelOrder
from rasterconv.codec.rows import Compression, RowDecoder, RowEncoder
from rasterconv.components.container import ContainerInfo, ImageFile, format_from_path
from rasterconv.components.image import Raster
from rasterconv.core.arena import Arena, RasterRef
from rasterconv.core.serialization import (
    HEADER_TYPES,
    ContainerHeader,
    ProPraHeader,
    TGAHeader,
    check_trailing_data,
    patch_propra_header,
    read_header,
    verify_segment,
)
from rasterconv.core.system import System

if TYPE_CHECKING:
    from rasterconv.core.world import World

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 65536

# Candidate order for "auto"; on equal size the earlier mode wins.
AUTO_CANDIDATES = (Compression.UNCOMPRESSED, Compression.RLE, Compression.HUFFMAN)

SUPPORTED_COMPRESSION: dict[str, tuple[Compression, ...]] = {
    "propra": (Compression.UNCOMPRESSED, Compression.RLE, Compression.HUFFMAN),
    "tga": (Compression.UNCOMPRESSED, Compression.RLE),
}


def _info(header: ContainerHeader, tally: SegmentTally) -> ContainerInfo:
    return ContainerInfo(
        format=header.format,
        width=header.width,
        height=header.height,
        compression=header.compression,
        data_segment_size=tally.size,
        checksum=tally.checksum.value(),
    )


def _row_pixels(row: np.ndarray) -> list[Pixel]:
    return [Pixel(r, g, b) for r, g, b in row.tolist()]


def build_tree(pix: np.ndarray, order: PixelOrder) -> HuffmanTree:
    """Build the Huffman tree over every pixel byte, in output byte order."""
    return HuffmanTree.from_histogram(histogram(pix[..., list(order.indices)]))


def decode_container(
    stream: BinaryIO, fmt: str, arena: Arena
) -> tuple[ContainerHeader, RasterRef, SegmentTally]:
    """Decode a whole container from ``stream`` into a new arena raster.

    Returns:
        Tuple of (header, raster handle, input-side tally)

    Raises:
        HeaderInvalidError: If the header is invalid
        TruncatedError: If the body ends early
        ChecksumMismatchError, SizeMismatchError: If a ProPra body does not
            match its header
        TrailingDataError: If a ProPra file has bytes after the body
    """
    header = read_header(stream, fmt)
    logger.debug("Read %s header: %s", fmt, header)

    ref = arena.alloc_raster(header.height, header.width)
    pix = arena.view(ref)
    tally = SegmentTally()
    decoder = RowDecoder(header.compression, header.PIXEL_ORDER)

    for y in range(header.height):
        row = decoder.decode_row(stream, header.width, tally)
        pix[y] = [(p.r, p.g, p.b) for p in row]

    if isinstance(header, ProPraHeader):
        verify_segment(header, tally)
    check_trailing_data(stream, header)
    return header, ref, tally


def encode_body(
    stream: BinaryIO, pix: np.ndarray, compression: Compression, order: PixelOrder
) -> SegmentTally:
    """Write the data segment for ``pix`` (H, W, 3 RGB) to ``stream``.

    Returns:
        Output-side tally with the data segment size and checksum
    """
    tree = build_tree(pix, order) if compression is Compression.HUFFMAN else None
    encoder = RowEncoder(compression, order, tree)
    tally = SegmentTally()
    for row in pix:
        stream.write(encoder.encode_row(_row_pixels(row), tally))
    stream.write(encoder.finish(tally))
    return tally


def choose_compression(pix: np.ndarray, fmt: str) -> Compression:
    """Pick the mode giving the smallest data segment for ``fmt``."""
    header_type = HEADER_TYPES[fmt]
    sizes: dict[Compression, int] = {}
    for compression in AUTO_CANDIDATES:
        if compression not in SUPPORTED_COMPRESSION[fmt]:
            continue
        sizes[compression] = encode_body(
            io.BytesIO(), pix, compression, header_type.PIXEL_ORDER
        ).size
    best = min(sizes, key=lambda c: (sizes[c], AUTO_CANDIDATES.index(c)))
    logger.debug("Auto compression sizes for %s: %s -> %s", fmt, sizes, best.name)
    return best


def write_container(
    path: str,
    pix: np.ndarray,
    fmt: str,
    compression: Compression,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> tuple[ContainerHeader, SegmentTally]:
    """Write ``pix`` to ``path`` and reconcile the header.

    Returns:
        Tuple of (final header, output-side tally)
    """
    if compression not in SUPPORTED_COMPRESSION[fmt]:
        raise ValueError(
            f"{compression.name} compression is not supported for *.{fmt} output"
        )
    height, width = pix.shape[:2]
    header: ContainerHeader
    if fmt == "propra":
        header = ProPraHeader(width=width, height=height, compression=compression)
    else:
        header = TGAHeader(width=width, height=height, compression=compression)

    # Phase 1: placeholder header and body, streamed sequentially.
    with open(path, "wb", buffering=buffer_size) as stream:
        stream.write(header.pack())
        tally = encode_body(stream, pix, compression, header.PIXEL_ORDER)

    # Phase 2: bounded positional overwrite of size and checksum.
    if isinstance(header, ProPraHeader):
        with open(path, "r+b") as stream:
            patch_propra_header(stream, tally.size, tally.checksum.value())
        header = header.model_copy(
            update={"data_segment_size": tally.size, "checksum": tally.checksum.value()}
        )
        logger.debug(
            "Patched %s: size=%d checksum=%s", path, tally.size, tally.checksum
        )
    return header, tally


class ContainerDecode(System):
    """Decode an image container into pixels.

    Decode mode: ImageFile → Raster + ContainerInfo
    """

    def __init__(
        self,
        mode: Literal["decode"] = "decode",
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        super().__init__(mode=mode)
        if mode != "decode":
            raise ValueError("ContainerDecode only supports decode mode")
        self.buffer_size = buffer_size

    def required_components(self) -> list[type]:
        return [ImageFile]

    def produced_components(self) -> list[type]:
        return [Raster, ContainerInfo]

    def run(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            source = world.get_component(eid, ImageFile)
            fmt = source.resolved_format
            with open(source.path, "rb", buffering=self.buffer_size) as stream:
                header, ref, tally = decode_container(stream, fmt, world.arena)

            info = _info(header, tally)
            world.add_component(eid, Raster(pix=ref))
            world.add_component(eid, info)
            world.metadata[eid]["source_info"] = info
            logger.debug("Decoded %s (%dx%d, %s)", source.path, info.width, info.height,
                         info.compression.name)


class ContainerEncode(System):
    """Encode pixels into an image container on disk.

    Encode mode: Raster → ImageFile + ContainerInfo

    Attributes:
        path: Output file path
        format: Output container format ('propra' or 'tga')
        compression: Output compression, or 'auto' for the smallest body
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        compression: str | Compression = "rle",
        fmt: str | None = None,
        mode: Literal["encode"] = "encode",
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        super().__init__(mode=mode)
        if mode != "encode":
            raise ValueError("ContainerEncode only supports encode mode")
        self.path = os.fspath(path)
        self.format = fmt or format_from_path(self.path)
        if self.format not in SUPPORTED_COMPRESSION:
            raise ValueError(f"Unsupported container format: {self.format!r}")
        self.buffer_size = buffer_size

        self.compression: Compression | Literal["auto"]
        if isinstance(compression, str) and compression.strip().lower() == "auto":
            self.compression = "auto"
        else:
            self.compression = Compression.parse(compression)
            if self.compression not in SUPPORTED_COMPRESSION[self.format]:
                raise ValueError(
                    f"Unsupported file format for output when using "
                    f"{self.compression.name.lower()} compression. Only *.propra is supported."
                )

    def required_components(self) -> list[type]:
        return [Raster]

    def produced_components(self) -> list[type]:
        return [ImageFile, ContainerInfo]

    def run(self, world: World, eids: list[int]) -> None:
        if len(eids) != 1:
            raise ValueError(
                f"ContainerEncode writes a single file; got {len(eids)} entities"
            )
        eid = eids[0]
        raster = world.get_component(eid, Raster)
        pix = world.arena.view(raster.pix)

        if self.compression == "auto":
            compression = choose_compression(pix, self.format)
        else:
            compression = self.compression

        header, tally = write_container(
            self.path, pix, self.format, compression, self.buffer_size
        )
        world.add_component(eid, ImageFile(path=self.path, format=self.format))  # type: ignore[arg-type]
        world.add_component(eid, _info(header, tally))
        logger.debug("Encoded %s with %s compression (%d bytes)", self.path,
                     compression.name, tally.size)
