"""Integration tests: multi-hop conversions through every mode."""

import numpy as np
import pytest

from rasterconv.api import convert, get_image_info, read_image, write_image
from rasterconv.codec.checksum import Checksum


@pytest.fixture
def photo_like() -> np.ndarray:
    """Smooth gradient with a noisy patch, roughly like a real photo."""
    h, w = 48, 64
    y, x = np.mgrid[0:h, 0:w]
    img = np.stack([x * 4, y * 5, (x + y) * 2], axis=-1).astype(np.uint8)
    rng = np.random.default_rng(9)
    img[10:20, 10:30] = rng.integers(0, 256, size=(10, 20, 3), dtype=np.uint8)
    img[30:, :] = (255, 255, 255)
    return img


class TestConversionChain:
    """Pixels survive any chain of conversions."""

    def test_chain(self, tmp_path, photo_like) -> None:
        start = tmp_path / "start.tga"
        write_image(photo_like, start, "uncompressed")

        hops = [
            ("a.propra", "huffman"),
            ("b.tga", "rle"),
            ("c.propra", "rle"),
            ("d.tga", "uncompressed"),
            ("e.propra", "auto"),
        ]
        src = start
        for name, compression in hops:
            dst = tmp_path / name
            convert(src, dst, compression)
            np.testing.assert_array_equal(read_image(dst), photo_like)
            src = dst

    @pytest.mark.parametrize("compression", ["uncompressed", "rle", "huffman"])
    def test_header_matches_body(self, tmp_path, photo_like, compression) -> None:
        """Patched header values equal those recomputed from the body."""
        path = tmp_path / "img.propra"
        write_image(photo_like, path, compression)

        info = get_image_info(path)
        body = path.read_bytes()[28:]
        checksum = Checksum()
        checksum.add_bytes(body)
        assert info["data_segment_size"] == len(body)
        assert info["checksum"] == checksum.value()

    def test_compressed_sizes(self, tmp_path, photo_like) -> None:
        sizes = {}
        for compression in ["uncompressed", "rle", "huffman"]:
            info = write_image(photo_like, tmp_path / f"{compression}.propra", compression)
            sizes[compression] = info["data_segment_size"]
        assert sizes["uncompressed"] == photo_like.size
        assert sizes["rle"] < sizes["uncompressed"]
        assert sizes["huffman"] < sizes["uncompressed"]
