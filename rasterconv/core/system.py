"""System base class for ECS transformations.

Systems are the "logic" layer of the ECS architecture. They operate on
components attached to entities, reading required components and producing
new components.

Systems run in one of two directions:
- 'decode': container bytes to pixels
- 'encode': pixels to container bytes

Example:
    >>> class MySystem(System):
    ...     def required_components(self):
    ...         return [ImageFile]
    ...     def produced_components(self):
    ...         return [Raster]
    ...     def run(self, world, eids):
    ...         for eid in eids:
    ...             source = world.get_component(eid, ImageFile)
    ...             # Process...
    ...             world.add_component(eid, Raster(...))
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

from rasterconv.core.world import World


class System(ABC):
    """Base class for all ECS systems.

    Systems transform components attached to entities. They declare:
    - required_components(): What inputs they need
    - produced_components(): What outputs they create
    - run(): The actual transformation logic

    Attributes:
        mode: Transformation direction ('decode' or 'encode')
    """

    def __init__(self, mode: Literal["decode", "encode"] = "decode") -> None:
        if mode not in ("decode", "encode"):
            raise ValueError(f"mode must be 'decode' or 'encode', got {mode!r}")
        self.mode = mode

    @abstractmethod
    def required_components(self) -> list[type]:
        """Return list of component types this system requires as input."""

    @abstractmethod
    def produced_components(self) -> list[type]:
        """Return list of component types this system produces as output."""

    @abstractmethod
    def run(self, world: World, eids: list[int]) -> None:
        """Execute system on given entities.

        Args:
            world: World instance with entities and components
            eids: List of entity IDs to process
        """

    def can_run(self, world: World, eid: int) -> bool:
        """Check if entity has all required components."""
        return all(world.has_component(eid, ct) for ct in self.required_components())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(mode={self.mode})"
