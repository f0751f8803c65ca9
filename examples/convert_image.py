#!/usr/bin/env python3
"""Command-line converter between ProPra and TGA files.

Options:
- --input / --output select the containers by extension
- --compression picks uncompressed, rle, huffman or auto
- without --input, a random image is written and read back

Example:
    python examples/convert_image.py --input in.tga --output out.propra --compression huffman
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from rasterconv.api import convert, get_image_info, read_image, write_image


def main() -> int:
    parser = argparse.ArgumentParser(description="Convert ProPra/TGA images")
    parser.add_argument(
        "--input",
        type=Path,
        default=None,
        help="Input .tga or .propra file (random image if omitted)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Output .tga or .propra file",
    )
    parser.add_argument(
        "--compression",
        choices=["uncompressed", "rle", "huffman", "auto"],
        default=None,
        help="Output compression (default from rasterconv.toml, else rle)",
    )
    parser.add_argument(
        "--size",
        type=int,
        default=64,
        help="Random image size if no input is given",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to rasterconv.toml",
    )
    args = parser.parse_args()
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    config_arg = str(args.config) if args.config else None

    try:
        if args.input is None:
            print("No input given; writing a random image instead")
            image = np.random.randint(0, 256, (args.size, args.size, 3), dtype=np.uint8)
            write_image(image, args.output, args.compression, config_path=config_arg)
            assert np.array_equal(read_image(args.output, config_path=config_arg), image)
        else:
            result = convert(args.input, args.output, args.compression, config_path=config_arg)
            print(f"Input:  {result['input']}")
    except (ValueError, OSError) as e:
        print(f"Conversion failed: {e}", file=sys.stderr)
        return 1

    print(f"Output: {get_image_info(args.output)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
