"""Cheap structural pre-checks run before a full decode."""

from __future__ import annotations

import struct

from .errors import ErrorCode, Result, StructuralError
from .protocol import FIXED_SIZE, MAGIC, MAGIC_OFFSET, PACKET_LENGTH_OFFSET


def validate_buffer(data: bytes | bytearray | memoryview) -> Result:
    """Check size, magic and declared length; stop at the first failure.

    Guarantees that a buffer passing this check can be read up to its
    declared ``packet_length`` without running off the end.
    """
    size = len(data)
    if size < FIXED_SIZE:
        return Result.failure(StructuralError(
            ErrorCode.BUFFER_TOO_SMALL,
            f"Buffer too small: {size} bytes "
            f"(minimum {FIXED_SIZE} bytes for header)"))

    magic = struct.unpack_from("<I", data, MAGIC_OFFSET)[0]
    if magic != MAGIC:
        return Result.failure(StructuralError(
            ErrorCode.INVALID_MAGIC,
            f"Invalid magic number: 0x{magic:X}"))

    packet_length = struct.unpack_from("<H", data, PACKET_LENGTH_OFFSET)[0]
    if packet_length != size:
        return Result.failure(StructuralError(
            ErrorCode.SIZE_MISMATCH,
            f"Buffer size mismatch: {size} bytes, "
            f"expected {packet_length} bytes"))

    # Unreachable once the two checks above hold; kept for forged lengths
    if packet_length < FIXED_SIZE:
        return Result.failure(StructuralError(
            ErrorCode.INVALID_PACKET_LENGTH,
            f"Invalid packet length: {packet_length} "
            f"(must be at least {FIXED_SIZE} bytes)"))

    return Result.success(packet_length)
