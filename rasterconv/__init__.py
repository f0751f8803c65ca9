"""ProPra/TGA image converter with an ECS pipeline.

This package converts 24-bit raster images between the ProPra container
and uncompressed or RLE TGA files using:
- Uncompressed, RLE and Huffman row codecs with checksum accounting
- Entity-Component-System (ECS) architecture for decode/encode stages
- Zero-copy raster storage via Arena allocation

Quick Start:
    >>> from rasterconv import convert, read_image
    >>>
    >>> convert("in.tga", "out.propra", compression="huffman")
    >>> img = read_image("out.propra")

For more control, use the fluent pipeline API:
    >>> from rasterconv import World
    >>> from rasterconv.systems import ContainerDecode, ContainerEncode
    >>>
    >>> world = World()
    >>> entity = world.open_image("in.tga")
    >>> info = (
    ...     world.pipe(entity)
    ...     .to(ContainerDecode())
    ...     .to(ContainerEncode("out.propra", compression="auto"))
    ...     .out(ContainerInfo)
    ... )
"""

__version__ = "0.1.0"

from rasterconv.api import convert, get_image_info, read_image, write_image
from rasterconv.codec.rows import Compression
from rasterconv.components.container import ContainerInfo, ImageFile
from rasterconv.components.image import Raster
from rasterconv.core.arena import Arena, RasterRef
from rasterconv.core.world import World

__all__ = [
    "__version__",
    "convert",
    "get_image_info",
    "read_image",
    "write_image",
    "Compression",
    "ContainerInfo",
    "ImageFile",
    "Raster",
    "World",
    "Arena",
    "RasterRef",
]
