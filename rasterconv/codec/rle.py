"""Run-length packetizer for one row of pixels.

Packet wire form:
  - Raw: control byte ``(count - 1) & 0x7F`` followed by ``count`` pixels
  - Run: control byte ``(count - 1) | 0x80`` followed by one pixel

``count`` is always in [1, 128]. Packets never span rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO

from rasterconv.codec.checksum import SegmentTally
from rasterconv.codec.pixel import BYTES_PER_PIXEL, Pixel, PixelOrder, pixels_from_bytes
from rasterconv.errors import PacketOverrunError

MAX_PACKET_SIZE = 128
RUN_FLAG = 0x80


class PacketKind(Enum):
    RAW = "raw"
    RUN = "run"


@dataclass
class Packet:
    """One RLE packet.

    Attributes:
        kind: RAW (literal pixels) or RUN (one repeated pixel)
        pixels: Literal pixels for RAW; the single repeated pixel for RUN
        repeat: Repeat count for RUN packets
    """

    kind: PacketKind
    pixels: list[Pixel] = field(default_factory=list)
    repeat: int = 0

    @classmethod
    def raw(cls, pixel: Pixel) -> Packet:
        return cls(PacketKind.RAW, [pixel])

    @classmethod
    def run(cls, pixel: Pixel) -> Packet:
        return cls(PacketKind.RUN, [pixel], repeat=1)

    @property
    def count(self) -> int:
        """Number of pixels this packet expands to."""
        if self.kind is PacketKind.RUN:
            return self.repeat
        return len(self.pixels)

    @property
    def full(self) -> bool:
        return self.count >= MAX_PACKET_SIZE

    def add(self, pixel: Pixel) -> None:
        """Extend the packet by one pixel."""
        if self.full:
            raise ValueError(f"Packet already holds {MAX_PACKET_SIZE} pixels")
        if self.kind is PacketKind.RUN:
            if pixel != self.pixels[0]:
                raise ValueError("Run packet can only repeat its own pixel")
            self.repeat += 1
        else:
            self.pixels.append(pixel)

    @property
    def control_byte(self) -> int:
        if self.kind is PacketKind.RUN:
            return (self.count - 1) | RUN_FLAG
        return (self.count - 1) & 0x7F

    def to_bytes(self, order: PixelOrder) -> bytes:
        """Serialize control byte and pixel payload."""
        body = b"".join(p.to_bytes(order) for p in self.pixels)
        return bytes([self.control_byte]) + body


def packetize(row: list[Pixel]) -> list[Packet]:
    """Split a row into packets with the greedy lookahead rule.

    A run is opened whenever the current pixel equals the next one; a raw
    packet is closed just before a pixel that starts such a run.
    """
    packets: list[Packet] = []
    current: Packet | None = None
    last = len(row) - 1

    for i, pixel in enumerate(row):
        starts_run = i < last and pixel == row[i + 1]

        if current is not None and current.full:
            packets.append(current)
            current = None

        if current is not None:
            if current.kind is PacketKind.RUN:
                if pixel == current.pixels[0]:
                    current.add(pixel)
                else:
                    packets.append(current)
                    current = None
            elif starts_run:
                packets.append(current)
                current = None
            else:
                current.add(pixel)

        if current is None:
            current = Packet.run(pixel) if starts_run else Packet.raw(pixel)

    if current is not None:
        packets.append(current)
    return packets


def encode_row(row: list[Pixel], order: PixelOrder, tally: SegmentTally) -> bytes:
    """RLE-encode one row and account for the produced bytes."""
    data = b"".join(packet.to_bytes(order) for packet in packetize(row))
    tally.feed(data)
    return data


def decode_row(
    stream: BinaryIO, width: int, order: PixelOrder, tally: SegmentTally
) -> list[Pixel]:
    """Read packets from ``stream`` until ``width`` pixels are decoded.

    Raises:
        TruncatedError: If the stream ends inside a packet
        PacketOverrunError: If a packet extends past the end of the row
    """
    row: list[Pixel] = []
    while len(row) < width:
        control = tally.read(stream, 1, "RLE control byte")[0]
        count = (control & 0x7F) + 1
        if count > width - len(row):
            raise PacketOverrunError(
                f"RLE packet of {count} pixels exceeds the {width - len(row)} "
                f"pixels left in the row"
            )
        if control & RUN_FLAG:
            data = tally.read(stream, BYTES_PER_PIXEL, "RLE run packet")
            row.extend([Pixel.from_bytes(data, order)] * count)
        else:
            data = tally.read(stream, count * BYTES_PER_PIXEL, "RLE raw packet")
            row.extend(pixels_from_bytes(data, order))
    return row
