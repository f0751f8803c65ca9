"""World: Entity-Component-System manager.

The World is the central ECS registry that manages:
- Entity creation (integer IDs)
- Component storage (type -> entity -> component mapping)
- Component queries (find entities with specific component combinations)
- Arena memory for decoded rasters

Example:
    >>> world = World(arena_bytes=1 << 20)
    >>> eid = world.open_image("in.tga")
    >>> world.query(ImageFile)
    [0]
    >>> world.clear()  # Reset for next conversion
"""

from __future__ import annotations

import os
from typing import Any, TypeVar

import numpy as np
from pydantic import BaseModel

from rasterconv.core.arena import Arena

Component = BaseModel

T = TypeVar("T", bound=Component)


class World:
    """Central ECS registry managing entities, components, and memory.

    Attributes:
        arena: Memory arena for decoded rasters
        metadata: Per-entity metadata dict
    """

    def __init__(self, arena_bytes: int = 64 << 20):
        """Create World with specified arena size.

        Args:
            arena_bytes: Arena size in bytes (default 64 MB)
        """
        self.arena = Arena(size_bytes=arena_bytes)
        self._next_eid = 0
        self._components: dict[type[Component], dict[int, Component]] = {}
        self.metadata: dict[int, dict[str, Any]] = {}

    def new_entity(self) -> int:
        """Create a new entity and return its ID."""
        eid = self._next_eid
        self._next_eid += 1
        self.metadata[eid] = {}
        return eid

    def spawn_image(self, img: np.ndarray) -> int:
        """Ingest an RGB image into the world.

        Args:
            img: RGB image array (H, W, 3) with dtype uint8

        Returns:
            Entity ID with a Raster component attached

        Raises:
            ValueError: If image shape or dtype is invalid
        """
        from rasterconv.components.image import Raster

        if img.ndim != 3 or img.shape[2] != 3:
            raise ValueError(f"Expected image with shape (H, W, 3), got {img.shape}")
        if img.dtype != np.uint8:
            raise ValueError(f"Expected dtype uint8, got {img.dtype}")
        if img.shape[0] > 0xFFFF or img.shape[1] > 0xFFFF:
            raise ValueError(f"Image dimensions exceed 65535: {img.shape[:2]}")

        eid = self.new_entity()
        pix_ref = self.arena.copy_raster(img)
        self.add_component(eid, Raster(pix=pix_ref))
        self.metadata[eid]["image_shape"] = img.shape
        return eid

    def open_image(self, path: str | os.PathLike[str], fmt: str | None = None) -> int:
        """Create an entity for an image container on disk.

        The file is not read until a decode system runs on the entity.

        Args:
            path: Path to a .propra or .tga file
            fmt: Container format, derived from the extension if None

        Returns:
            Entity ID with an ImageFile component attached
        """
        from rasterconv.components.container import ImageFile

        image_file = ImageFile(path=os.fspath(path), format=fmt)
        eid = self.new_entity()
        self.add_component(eid, image_file)
        self.metadata[eid]["source"] = image_file.path
        self.metadata[eid]["format"] = image_file.resolved_format
        return eid

    def clear(self) -> None:
        """Reset arena and clear all entities/components for reuse.

        After clear(), all RasterRefs from previous entities are invalidated.
        """
        self.arena.reset()
        self._next_eid = 0
        self._components.clear()
        self.metadata.clear()

    def add_component(self, eid: int, component: Component) -> None:
        """Attach a component to an entity, replacing one of the same type.

        Raises:
            ValueError: If entity does not exist
        """
        if eid not in self.metadata:
            raise ValueError(f"Entity {eid} does not exist")

        self._components.setdefault(type(component), {})[eid] = component

    def get_component(self, eid: int, comp_type: type[T]) -> T:
        """Retrieve a component from an entity.

        Raises:
            KeyError: If entity does not have the component
        """
        if comp_type not in self._components:
            raise KeyError(f"No entities have component type {comp_type.__name__}")
        if eid not in self._components[comp_type]:
            raise KeyError(f"Entity {eid} does not have component {comp_type.__name__}")

        return self._components[comp_type][eid]  # type: ignore

    def has_component(self, eid: int, comp_type: type[Component]) -> bool:
        return comp_type in self._components and eid in self._components[comp_type]

    def remove_component(self, eid: int, comp_type: type[Component]) -> None:
        """Remove a component from an entity.

        Raises:
            KeyError: If entity does not have the component
        """
        if not self.has_component(eid, comp_type):
            raise KeyError(f"Entity {eid} does not have component {comp_type.__name__}")

        del self._components[comp_type][eid]

    def query(self, *comp_types: type[Component]) -> list[int]:
        """Query entities that have ALL specified component types.

        Example:
            >>> eids = world.query(Raster, ContainerInfo)
        """
        if not comp_types:
            return list(self.metadata.keys())

        result_set = set(self._components.get(comp_types[0], {}).keys())
        for comp_type in comp_types[1:]:
            if comp_type not in self._components:
                return []
            result_set &= set(self._components[comp_type].keys())

        return sorted(result_set)

    def destroy_entity(self, eid: int) -> None:
        """Remove entity and all its components.

        Note:
            Arena memory is only released by clear().
        """
        if eid not in self.metadata:
            raise ValueError(f"Entity {eid} does not exist")

        for comp_store in self._components.values():
            comp_store.pop(eid, None)
        del self.metadata[eid]

    def pipe(self, entity: int) -> Any:
        """Create a pipeline for the given entity.

        Example:
            >>> info = (
            ...     world.pipe(entity)
            ...     .to(ContainerDecode())
            ...     .to(ContainerEncode("out.propra", compression="huffman"))
            ...     .out(ContainerInfo)
            ... )
        """
        from rasterconv.core.pipeline import Pipe

        return Pipe(world=self, entity=entity)

    def __repr__(self) -> str:
        num_entities = len(self.metadata)
        num_comp_types = len(self._components)
        return (
            f"World(entities={num_entities}, component_types={num_comp_types}, "
            f"arena={self.arena})"
        )
