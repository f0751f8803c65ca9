"""Tests for ContainerDecode/ContainerEncode systems."""

import io
import struct

import numpy as np
import pytest

from rasterconv.codec.checksum import Checksum
from rasterconv.codec.pixel import PixelOrder
from rasterconv.codec.rows import Compression
from rasterconv.components.container import ContainerInfo
from rasterconv.components.image import Raster
from rasterconv.core.arena import Arena
from rasterconv.core.world import World
from rasterconv.errors import (
    ChecksumMismatchError,
    HeaderInvalidError,
    SizeMismatchError,
    TrailingDataError,
    TruncatedError,
)
from rasterconv.systems.container import (
    ContainerDecode,
    ContainerEncode,
    build_tree,
    choose_compression,
    decode_container,
    encode_body,
    write_container,
)


@pytest.fixture
def test_image() -> np.ndarray:
    """Image with flat regions and noise, so every mode has work to do."""
    rng = np.random.default_rng(5)
    img = np.zeros((16, 24, 3), dtype=np.uint8)
    img[:8] = (200, 30, 30)
    img[8:, :12] = rng.integers(0, 256, size=(8, 12, 3), dtype=np.uint8)
    img[8:, 12:] = (0, 90, 180)
    return img


def _encode(path, img: np.ndarray, compression: str) -> ContainerInfo:
    world = World()
    entity = world.spawn_image(img)
    return world.pipe(entity).to(ContainerEncode(path, compression)).out(ContainerInfo)


def _decode(path) -> np.ndarray:
    world = World()
    entity = world.open_image(path)
    raster = world.pipe(entity).to(ContainerDecode()).out(Raster)
    return world.arena.view(raster.pix).copy()


class TestContainerEncode:
    """Test writing containers."""

    @pytest.mark.parametrize("compression", ["uncompressed", "rle", "huffman"])
    def test_propra_header_is_patched(self, tmp_path, test_image, compression) -> None:
        path = tmp_path / "out.propra"
        info = _encode(path, test_image, compression)

        data = path.read_bytes()
        size, checksum = struct.unpack_from("<QI", data, 0x10)
        body = data[28:]
        expected = Checksum()
        expected.add_bytes(body)

        assert size == len(body) == info.data_segment_size
        assert checksum == expected.value() == info.checksum
        assert data[15] == int(Compression.parse(compression))

    def test_propra_uncompressed_body_is_gbr(self, tmp_path) -> None:
        img = np.array([[[1, 2, 3], [4, 5, 6]]], dtype=np.uint8)
        path = tmp_path / "out.propra"
        _encode(path, img, "uncompressed")
        assert path.read_bytes()[28:] == bytes([2, 3, 1, 5, 6, 4])

    def test_tga_uncompressed_body_is_bgr(self, tmp_path) -> None:
        img = np.array([[[1, 2, 3], [4, 5, 6]]], dtype=np.uint8)
        path = tmp_path / "out.tga"
        _encode(path, img, "uncompressed")
        data = path.read_bytes()
        assert data[2] == 2
        assert data[18:] == bytes([3, 2, 1, 6, 5, 4])

    def test_tga_rle_image_type(self, tmp_path, test_image) -> None:
        path = tmp_path / "out.tga"
        info = _encode(path, test_image, "rle")
        assert path.read_bytes()[2] == 10
        assert info.compression is Compression.RLE

    def test_huffman_to_tga_rejected(self, tmp_path) -> None:
        with pytest.raises(ValueError, match="Only \\*.propra is supported"):
            ContainerEncode(tmp_path / "out.tga", compression="huffman")

    def test_unknown_compression(self, tmp_path) -> None:
        with pytest.raises(ValueError, match="Unknown compression"):
            ContainerEncode(tmp_path / "out.propra", compression="zip")

    def test_unsupported_extension(self, tmp_path) -> None:
        with pytest.raises(ValueError, match="Unsupported file format"):
            ContainerEncode(tmp_path / "out.png")

    def test_encode_mode_only(self, tmp_path) -> None:
        with pytest.raises(ValueError, match="only supports encode mode"):
            ContainerEncode(tmp_path / "out.tga", mode="decode")  # type: ignore[arg-type]

    def test_single_entity_only(self, tmp_path, test_image) -> None:
        world = World()
        eids = [world.spawn_image(test_image), world.spawn_image(test_image)]
        with pytest.raises(ValueError, match="single file"):
            ContainerEncode(tmp_path / "out.tga").run(world, eids)

    def test_system_components(self, tmp_path) -> None:
        encoder = ContainerEncode(tmp_path / "out.propra")
        assert encoder.required_components() == [Raster]
        assert ContainerInfo in encoder.produced_components()
        assert encoder.mode == "encode"


class TestAutoCompression:
    """Test picking the smallest encoding."""

    def test_flat_image_prefers_rle(self, tmp_path) -> None:
        img = np.full((10, 100, 3), 42, dtype=np.uint8)
        info = _encode(tmp_path / "flat.propra", img, "auto")
        assert info.compression is Compression.RLE

    def test_noise_to_tga_prefers_uncompressed(self, tmp_path) -> None:
        rng = np.random.default_rng(1)
        img = rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8)
        info = _encode(tmp_path / "noise.tga", img, "auto")
        assert info.compression is Compression.UNCOMPRESSED

    def test_few_symbols_prefers_huffman(self) -> None:
        """Two byte values with no runs: one bit per byte beats the rest."""
        img = np.zeros((4, 64, 3), dtype=np.uint8)
        img[:, ::2] = (255, 0, 255)
        img[:, 1::2] = (0, 255, 0)
        assert choose_compression(img, "propra") is Compression.HUFFMAN
        assert choose_compression(img, "tga") is Compression.UNCOMPRESSED

    def test_auto_matches_smallest(self, test_image) -> None:
        sizes = {
            c: encode_body(io.BytesIO(), test_image, c, PixelOrder.GBR).size
            for c in Compression
        }
        chosen = choose_compression(test_image, "propra")
        assert sizes[chosen] == min(sizes.values())

    def test_auto_round_trip(self, tmp_path, test_image) -> None:
        path = tmp_path / "auto.propra"
        _encode(path, test_image, "auto")
        np.testing.assert_array_equal(_decode(path), test_image)


class TestContainerDecode:
    """Test reading containers."""

    @pytest.mark.parametrize(
        "name,compression",
        [
            ("a.propra", "uncompressed"),
            ("b.propra", "rle"),
            ("c.propra", "huffman"),
            ("d.tga", "uncompressed"),
            ("e.tga", "rle"),
        ],
    )
    def test_round_trip(self, tmp_path, test_image, name, compression) -> None:
        path = tmp_path / name
        _encode(path, test_image, compression)
        np.testing.assert_array_equal(_decode(path), test_image)

    def test_decoded_info_matches_encoded(self, tmp_path, test_image) -> None:
        path = tmp_path / "x.propra"
        written = _encode(path, test_image, "huffman")

        world = World()
        entity = world.open_image(path)
        read = world.pipe(entity).to(ContainerDecode()).out(ContainerInfo)
        assert read == written
        assert world.metadata[entity]["source_info"] == read

    def test_checksum_mismatch(self, tmp_path, test_image) -> None:
        path = tmp_path / "x.propra"
        _encode(path, test_image, "uncompressed")
        data = bytearray(path.read_bytes())
        data[40] ^= 0xFF
        path.write_bytes(bytes(data))
        with pytest.raises(ChecksumMismatchError):
            _decode(path)

    def test_size_mismatch(self, tmp_path, test_image) -> None:
        path = tmp_path / "x.propra"
        _encode(path, test_image, "rle")
        data = bytearray(path.read_bytes())
        size = struct.unpack_from("<Q", data, 0x10)[0]
        struct.pack_into("<Q", data, 0x10, size + 1)
        path.write_bytes(bytes(data))
        with pytest.raises(SizeMismatchError):
            _decode(path)

    def test_truncated_body(self, tmp_path, test_image) -> None:
        path = tmp_path / "x.propra"
        _encode(path, test_image, "uncompressed")
        path.write_bytes(path.read_bytes()[:-10])
        with pytest.raises(TruncatedError):
            _decode(path)

    def test_propra_trailing_data(self, tmp_path, test_image) -> None:
        path = tmp_path / "x.propra"
        _encode(path, test_image, "rle")
        path.write_bytes(path.read_bytes() + b"\x00")
        with pytest.raises(TrailingDataError):
            _decode(path)

    def test_tga_trailing_data_allowed(self, tmp_path, test_image) -> None:
        path = tmp_path / "x.tga"
        _encode(path, test_image, "rle")
        path.write_bytes(path.read_bytes() + b"TRUEVISION-XFILE.\x00")
        np.testing.assert_array_equal(_decode(path), test_image)

    def test_invalid_header(self, tmp_path) -> None:
        path = tmp_path / "x.propra"
        path.write_bytes(b"NotProPra!" + bytes(18))
        with pytest.raises(HeaderInvalidError):
            _decode(path)

    def test_decode_container_direct(self, tmp_path, test_image) -> None:
        path = tmp_path / "x.propra"
        header, tally = write_container(str(path), test_image, "propra", Compression.RLE)
        arena = Arena(size_bytes=test_image.nbytes)
        with open(path, "rb") as f:
            read_header_, ref, read_tally = decode_container(f, "propra", arena)
        assert read_header_ == header
        assert read_tally.size == tally.size
        np.testing.assert_array_equal(arena.view(ref), test_image)

    def test_decode_mode_only(self) -> None:
        with pytest.raises(ValueError, match="only supports decode mode"):
            ContainerDecode(mode="encode")  # type: ignore[arg-type]


class TestBuildTree:
    """Test the Huffman pre-pass."""

    def test_histogram_uses_output_order(self) -> None:
        img = np.array([[[1, 1, 2]]], dtype=np.uint8)
        tree = build_tree(img, PixelOrder.GBR)
        assert set(tree.code_table()) == {1, 2}
