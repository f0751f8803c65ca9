"""High-level API for reading, writing and converting images.

Provides one-call helpers that wrap the ContainerDecode/ContainerEncode
pipeline.
"""

from __future__ import annotations

import logging
import os
import shutil
from typing import Any

import numpy as np

from rasterconv.codec.pixel import BYTES_PER_PIXEL
from rasterconv.codec.rows import Compression
from rasterconv.components.container import ContainerInfo, format_from_path
from rasterconv.components.image import Raster
from rasterconv.config import configure_logging, load_config
from rasterconv.core.serialization import read_header
from rasterconv.core.world import World
from rasterconv.systems.container import ContainerDecode, ContainerEncode

logger = logging.getLogger(__name__)

# Floor for the per-call arena; small images still get a usable world.
MIN_ARENA_BYTES = 1 << 16


def _arena_bytes(width: int, height: int) -> int:
    return max(width * height * BYTES_PER_PIXEL + 64, MIN_ARENA_BYTES)


def _info_dict(info: ContainerInfo) -> dict[str, Any]:
    return {
        "format": info.format,
        "width": info.width,
        "height": info.height,
        "compression": info.compression.name.lower(),
        "data_segment_size": info.data_segment_size,
        "checksum": info.checksum,
    }


def _discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        return
    logger.debug("Removed partial output %s", path)


def get_image_info(path: str | os.PathLike[str]) -> dict[str, Any]:
    """Read the header of an image container without decoding the body.

    Args:
        path: Path to a .propra or .tga file

    Returns:
        Dictionary with format, width, height and compression; ProPra files
        also report the declared data_segment_size and checksum

    Raises:
        HeaderInvalidError: If the header is invalid
        ValueError: If the extension is not supported

    Example:
        >>> info = get_image_info("image.propra")
        >>> info["compression"]
        'huffman'
    """
    path = os.fspath(path)
    fmt = format_from_path(path)
    with open(path, "rb") as f:
        header = read_header(f, fmt)

    info: dict[str, Any] = {
        "format": fmt,
        "width": header.width,
        "height": header.height,
        "compression": header.compression.name.lower(),
    }
    if fmt == "propra":
        info["data_segment_size"] = header.data_segment_size  # type: ignore[union-attr]
        info["checksum"] = header.checksum  # type: ignore[union-attr]
    return info


def read_image(
    path: str | os.PathLike[str],
    config_path: str | None = None,
) -> np.ndarray:
    """Decode an image container to an RGB array.

    Args:
        path: Path to a .propra or .tga file
        config_path: Path to rasterconv.toml (auto-detected if None)

    Returns:
        Image as (H, W, 3) uint8 RGB array

    Raises:
        HeaderInvalidError: If the header is invalid
        TruncatedError: If the body ends early
        ChecksumMismatchError: If a ProPra checksum does not match
        SizeMismatchError: If a ProPra data segment size does not match
        TrailingDataError: If a ProPra file has data after the body

    Example:
        >>> img = read_image("image.tga")
        >>> img.shape
        (480, 640, 3)
    """
    config = load_config(config_path)
    configure_logging(config.log_level)

    header = get_image_info(path)
    world = World(arena_bytes=_arena_bytes(header["width"], header["height"]))
    try:
        entity = world.open_image(path)
        raster = (
            world.pipe(entity)
            .to(ContainerDecode(buffer_size=config.buffer_size))
            .out(Raster)
        )
        return world.arena.view(raster.pix).copy()
    finally:
        world.clear()


def write_image(
    image: np.ndarray,
    path: str | os.PathLike[str],
    compression: str | Compression | None = None,
    config_path: str | None = None,
) -> dict[str, Any]:
    """Encode an RGB array into an image container.

    Args:
        image: Input image as (H, W, 3) uint8 array
        path: Output .propra or .tga path
        compression: 'uncompressed', 'rle', 'huffman' or 'auto'
            (config default if None)
        config_path: Path to rasterconv.toml (auto-detected if None)

    Returns:
        Dictionary describing the written container

    Raises:
        ValueError: If the image or the compression/format pair is invalid
    """
    if not isinstance(image, np.ndarray):
        raise TypeError(f"Expected ndarray, got {type(image)}")
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected shape (H, W, 3), got {image.shape}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise ValueError(f"Image must not be empty, got shape {image.shape}")

    config = load_config(config_path)
    configure_logging(config.log_level)
    path = os.fspath(path)
    encoder = ContainerEncode(
        path,
        compression=compression if compression is not None else config.compression,
        buffer_size=config.buffer_size,
    )

    world = World(arena_bytes=_arena_bytes(image.shape[1], image.shape[0]))
    try:
        entity = world.spawn_image(image)
        try:
            info = world.pipe(entity).to(encoder).out(ContainerInfo)
        except BaseException:
            _discard(path)
            raise
    finally:
        world.clear()

    logger.info("Wrote %s (%dx%d, %s)", path, info.width, info.height,
                info.compression.name.lower())
    return _info_dict(info)


def convert(
    src: str | os.PathLike[str],
    dst: str | os.PathLike[str],
    compression: str | Compression | None = None,
    config_path: str | None = None,
) -> dict[str, Any]:
    """Convert an image container into another container.

    A conversion between files with the same extension is a plain byte
    copy; ``compression`` is ignored in that case.

    Args:
        src: Input .propra or .tga path
        dst: Output .propra or .tga path
        compression: 'uncompressed', 'rle', 'huffman' or 'auto'
            (config default if None)
        config_path: Path to rasterconv.toml (auto-detected if None)

    Returns:
        Dictionary with 'input' and 'output' container descriptions

    Raises:
        ValueError: On any header, body or reconciliation error; the
            partially written output is removed first

    Example:
        >>> result = convert("in.tga", "out.propra", compression="huffman")
        >>> result["output"]["compression"]
        'huffman'
    """
    src = os.fspath(src)
    dst = os.fspath(dst)
    config = load_config(config_path)
    configure_logging(config.log_level)

    src_fmt = format_from_path(src)
    dst_fmt = format_from_path(dst)
    if src_fmt == dst_fmt:
        shutil.copyfile(src, dst)
        info = get_image_info(dst)
        logger.info("Copied %s to %s", src, dst)
        return {"input": info, "output": info}

    # Validate the output choice before touching the input.
    encoder = ContainerEncode(
        dst,
        compression=compression if compression is not None else config.compression,
        fmt=dst_fmt,
        buffer_size=config.buffer_size,
    )

    header = get_image_info(src)
    world = World(arena_bytes=_arena_bytes(header["width"], header["height"]))
    try:
        entity = world.open_image(src, src_fmt)
        source_info = (
            world.pipe(entity)
            .to(ContainerDecode(buffer_size=config.buffer_size))
            .out(ContainerInfo)
        )
        try:
            output_info = world.pipe(entity).to(encoder).out(ContainerInfo)
        except BaseException:
            _discard(dst)
            raise
    finally:
        world.clear()

    logger.info(
        "Converted %s (%s) to %s (%s)",
        src,
        source_info.compression.name.lower(),
        dst,
        output_info.compression.name.lower(),
    )
    return {"input": _info_dict(source_info), "output": _info_dict(output_info)}
