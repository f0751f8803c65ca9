from rasterconv.systems.container import ContainerDecode, ContainerEncode

__all__ = ["ContainerDecode", "ContainerEncode"]
