"""Container components: ImageFile, ContainerInfo."""

from __future__ import annotations

import os
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from rasterconv.codec.rows import Compression

ImageFormat = Literal["propra", "tga"]


class Component(BaseModel):
    """Base class for all ECS components."""

    model_config = {"arbitrary_types_allowed": True}


def format_from_path(path: str | os.PathLike[str]) -> ImageFormat:
    """Derive the container format from a file extension.

    Raises:
        ValueError: If the extension is neither .propra nor .tga
    """
    ext = os.path.splitext(os.fspath(path))[1].lower().lstrip(".")
    if ext == "propra":
        return "propra"
    if ext == "tga":
        return "tga"
    raise ValueError(
        f"Unsupported file format {ext!r}. Only *.tga and *.propra are supported."
    )


class ImageFile(Component):
    """An image container on disk.

    Attributes:
        path: File path
        format: Container format; derived from the extension when omitted
    """

    path: str
    format: ImageFormat | None = None

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: object) -> str:
        if isinstance(value, os.PathLike):
            return os.fspath(value)  # type: ignore[return-value]
        return value  # type: ignore[return-value]

    @property
    def resolved_format(self) -> ImageFormat:
        return self.format or format_from_path(self.path)


class ContainerInfo(Component):
    """Header values of a container that was read or written.

    For ProPra these are the values reconciled with the data segment; for
    TGA, ``data_segment_size`` and ``checksum`` are computed over the body
    but are not part of the file.

    Attributes:
        format: Container format
        width: Image width in pixels
        height: Image height in pixels
        compression: Compression mode of the data segment
        data_segment_size: Bytes in the data segment
        checksum: Checksum of the data segment
    """

    format: ImageFormat
    width: int = Field(ge=1, le=0xFFFF)
    height: int = Field(ge=1, le=0xFFFF)
    compression: Compression
    data_segment_size: int = Field(ge=0)
    checksum: int = Field(ge=0, le=0xFFFFFFFF)
