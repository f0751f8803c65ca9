"""Image components: Raster."""

from pydantic import BaseModel, Field

from rasterconv.core.arena import RasterRef


class Component(BaseModel):
    """Base class for all ECS components.

    Components are data containers using Pydantic for validation and type safety.
    Pixel data is stored as RasterRef handles pointing into the arena.
    """

    model_config = {"arbitrary_types_allowed": True}


class Raster(Component):
    """Decoded image pixels.

    Attributes:
        pix: RasterRef to pixel data (H, W, 3) uint8, channels in RGB order
        colorspace: Colorspace identifier (default 'sRGB')
    """

    pix: RasterRef
    colorspace: str = Field(default="sRGB")
