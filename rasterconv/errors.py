"""Error kinds raised by the codec and container layers.

All errors subclass ``ValueError`` so callers can treat any malformed
input uniformly. None of them are recoverable at the point of detection:
the caller is expected to discard partially written output.
"""

from __future__ import annotations


class CodecError(ValueError):
    """Base class for all conversion errors."""


class HeaderInvalidError(CodecError):
    """Container header is malformed or describes an unsupported image."""


class TruncatedError(CodecError):
    """Fewer bytes or bits available than the current packet, row or node needs."""


class TreeIncompleteError(TruncatedError):
    """Bitstream ended while the Huffman tree still had open slots."""


class PacketOverrunError(CodecError):
    """An RLE packet describes more pixels than remain in the row."""


class TrailingDataError(CodecError):
    """Bytes found after the data segment in a format that forbids them."""


class _MismatchError(CodecError):
    """Declared header value differs from the recomputed one."""

    field = "value"

    def __init__(self, declared: int, actual: int, message: str | None = None) -> None:
        self.declared = declared
        self.actual = actual
        super().__init__(message or self._default_message())

    def _default_message(self) -> str:
        return f"{self.field} mismatch: header declares {self.declared}, computed {self.actual}"


class ChecksumMismatchError(_MismatchError):
    """Checksum in the header does not match the checksum of the data segment."""

    field = "Checksum"

    def _default_message(self) -> str:
        return (
            f"Checksum mismatch: header declares 0x{self.declared:08X}, "
            f"computed 0x{self.actual:08X}"
        )


class SizeMismatchError(_MismatchError):
    """Data-segment size in the header does not match the bytes consumed."""

    field = "Data segment size"
