"""Tests for BitWriter and BitReader."""

import io

import pytest

from rasterconv.codec.bitstream import BitReader, BitWriter
from rasterconv.codec.checksum import SegmentTally
from rasterconv.errors import TruncatedError


class TestBitWriter:
    """Test bit accumulation and byte emission."""

    def test_emits_complete_bytes(self) -> None:
        tally = SegmentTally()
        writer = BitWriter(tally)
        assert writer.write("1010") == b""
        assert writer.pending_bits == 4
        assert writer.write("11110000") == b"\xaf"
        assert writer.pending_bits == 4
        assert tally.size == 1

    def test_flush_pads_with_zeros(self) -> None:
        writer = BitWriter(SegmentTally())
        writer.write("101")
        assert writer.flush() == b"\xa0"
        assert writer.pending_bits == 0

    def test_flush_when_aligned(self) -> None:
        """Flushing an aligned writer emits nothing more."""
        tally = SegmentTally()
        writer = BitWriter(tally)
        assert writer.write("11111111") == b"\xff"
        assert writer.flush() == b""
        assert tally.size == 1

    def test_feeds_checksum(self) -> None:
        tally = SegmentTally()
        writer = BitWriter(tally)
        writer.write("00000000")
        writer.write("00000001")
        assert tally.checksum.value() == 262150

    def test_rejects_invalid_bits(self) -> None:
        writer = BitWriter(SegmentTally())
        with pytest.raises(ValueError, match="Invalid bit string"):
            writer.write("10a1")

    def test_empty_write(self) -> None:
        writer = BitWriter(SegmentTally())
        assert writer.write("") == b""


class TestBitReader:
    """Test bit consumption from a byte stream."""

    def test_take_bits(self) -> None:
        tally = SegmentTally()
        reader = BitReader(io.BytesIO(b"\xaf\x00"), tally)
        assert reader.take(4) == 0b1010
        assert reader.take(8) == 0b11110000
        assert reader.take(4) == 0
        assert tally.size == 2

    def test_exhaustion_returns_none(self) -> None:
        reader = BitReader(io.BytesIO(b"\x80"), SegmentTally())
        assert reader.take(8) == 0x80
        assert reader.take(1) is None
        assert reader.exhausted

    def test_zero_length_read(self) -> None:
        """A deliberate zero-length read is distinct from exhaustion."""
        reader = BitReader(io.BytesIO(b""), SegmentTally())
        assert reader.take(0) == 0
        assert reader.take(1) is None

    def test_partial_bits_truncated(self) -> None:
        reader = BitReader(io.BytesIO(b"\xff"), SegmentTally())
        assert reader.take(4) == 0xF
        with pytest.raises(TruncatedError, match="needed 8 bits"):
            reader.take(8)

    def test_negative_count(self) -> None:
        reader = BitReader(io.BytesIO(b"\xff"), SegmentTally())
        with pytest.raises(ValueError, match="non-negative"):
            reader.take(-1)

    def test_wide_take(self) -> None:
        reader = BitReader(io.BytesIO(b"\x12\x34\x56"), SegmentTally())
        assert reader.take(20) == 0x12345

    def test_reads_one_byte_ahead_at_most(self) -> None:
        """The queue is refilled lazily, one byte per take."""
        stream = io.BytesIO(b"\x01\x02\x03\x04")
        reader = BitReader(stream, SegmentTally())
        reader.take(1)
        assert stream.tell() == 1
        reader.take(1)
        assert stream.tell() == 2
        assert reader.queued_bits == 14

    def test_writer_reader_agree(self) -> None:
        out_tally = SegmentTally()
        writer = BitWriter(out_tally)
        bits = "1101001110001011101"
        data = writer.write(bits) + writer.flush()

        in_tally = SegmentTally()
        reader = BitReader(io.BytesIO(data), in_tally)
        assert reader.take(len(bits)) == int(bits, 2)
        reader.take(reader.queued_bits)
        assert in_tally.checksum.value() == out_tally.checksum.value()
        assert in_tally.size == out_tally.size
