"""Packet decoder, full ingest pipeline and stateful stream decoder."""

from __future__ import annotations

import logging
import struct

import numpy as np

from .errors import (
    ConsistencyWarning, ErrorCode, Result, StructuralError,
)
from .models import CsiSample, RadarPacket, RadarTarget, RadarTargets, format_mac
from .protocol import (
    FIXED_SIZE, HEADER_FMT, HEADER_SIZE, MAGIC, MAGIC_BYTES,
    PACKET_LENGTH_OFFSET, SENSOR_GROUPS, TARGET_FMT, TARGET_SIZE,
    TARGET_VALID, TARGETS_PER_GROUP, expected_length,
)
from .semantic import check_packet
from .validator import validate_buffer

logger = logging.getLogger(__name__)


def _read_target(data: bytes, offset: int) -> RadarTarget:
    x_mm, y_mm, dist_mm, speed_cms, angle_x10, track_id, flag = \
        struct.unpack_from(TARGET_FMT, data, offset)
    return RadarTarget(x_mm, y_mm, dist_mm, speed_cms, angle_x10, track_id,
                       flag == TARGET_VALID)


def _decode(data: bytes, strict: bool) -> tuple[RadarPacket, list[ConsistencyWarning]]:
    size = len(data)
    if size < FIXED_SIZE:
        raise StructuralError(
            ErrorCode.BUFFER_TOO_SMALL,
            f"Buffer too small: {size} bytes "
            f"(minimum {FIXED_SIZE} bytes for header)")

    (magic, version, reserved1, packet_length, mac, room_id, building_id,
     seq_number, csi_counter, timestamp_ms, rssi, channel, csi_len) = \
        struct.unpack_from(HEADER_FMT, data, 0)

    if magic != MAGIC:
        raise StructuralError(
            ErrorCode.INVALID_MAGIC,
            f"Invalid magic number: 0x{magic:X} (expected 0x{MAGIC:X})")

    offset = HEADER_SIZE
    groups: list[list[RadarTarget]] = []
    for _ in range(SENSOR_GROUPS):
        group = []
        for _ in range(TARGETS_PER_GROUP):
            group.append(_read_target(data, offset))
            offset += TARGET_SIZE
        groups.append(group)

    warnings: list[ConsistencyWarning] = []
    expected = expected_length(csi_len)
    if size < expected:
        raise StructuralError(
            ErrorCode.CSI_LENGTH_MISMATCH,
            f"Buffer length mismatch: received {size} bytes, csi_len={csi_len} "
            f"needs {expected} bytes")
    if size > expected:
        message = (f"Buffer length mismatch: received {size} bytes, expected "
                   f"{expected} bytes (header: {FIXED_SIZE}, "
                   f"CSI data: {expected - FIXED_SIZE})")
        if strict:
            raise StructuralError(ErrorCode.CSI_LENGTH_MISMATCH, message)
        logger.warning("%s; ignoring %d trailing bytes", message, size - expected)
        warnings.append(ConsistencyWarning(ErrorCode.CSI_LENGTH_MISMATCH, message))

    if csi_len:
        iq = np.frombuffer(data, dtype=np.int8, count=2 * csi_len, offset=offset)
        csi_data = tuple(CsiSample(i, q) for i, q in iq.reshape(-1, 2).tolist())
    else:
        csi_data = ()

    packet = RadarPacket(
        magic=magic,
        version=version,
        reserved1=reserved1,
        packet_length=packet_length,
        rx_mac=format_mac(mac),
        room_id=room_id,
        building_id=building_id,
        seq_number=seq_number,
        csi_counter=csi_counter,
        timestamp_ms=timestamp_ms,
        rssi=rssi,
        channel=channel,
        csi_len=csi_len,
        radar_targets=RadarTargets(tuple(groups[0]), tuple(groups[1])),
        csi_data=csi_data,
    )
    return packet, warnings


def decode_packet(data: bytes | bytearray | memoryview,
                  strict: bool = True) -> RadarPacket:
    """Decode one packet into a RadarPacket.

    Run validate_buffer() first; this only re-checks the magic number.
    With strict=False, bytes beyond ``114 + 2 * csi_len`` are logged and
    ignored instead of rejected.  A buffer too short for its csi_len is
    always rejected.
    """
    return _decode(data, strict)[0]


def parse_packet(data: bytes | bytearray | memoryview,
                 strict: bool = True) -> Result:
    """Validate, decode and semantically check one packet."""
    checked = validate_buffer(data)
    if not checked.ok:
        return checked

    try:
        packet, warnings = _decode(data, strict)
    except StructuralError as e:
        return Result.failure(e)

    semantic = check_packet(packet)
    if not semantic.ok:
        return Result.failure(semantic.error, warnings)
    return Result.success(packet, warnings)


class PacketStream:
    """Stateful decoder that recovers packets from a raw byte stream.

    Serial and TCP links carry back-to-back packets with no extra framing:
    each packet is located by its magic number and delimited by its own
    ``packet_length`` field.  Garbage between packets is skipped.

    For datagram transports (UDP), use parse_packet() directly.
    """

    def __init__(self, strict: bool = True, max_packet_size: int = 0xFFFF):
        self.strict = strict
        self.max_packet_size = max_packet_size
        self.packets: int = 0
        self.errors: int = 0
        self.skipped_bytes: int = 0
        self._buf = bytearray()

    def feed(self, data: bytes) -> list[Result]:
        """Feed raw bytes, return a Result for every complete packet."""
        self._buf.extend(data)
        results: list[Result] = []

        while True:
            start = self._buf.find(MAGIC_BYTES)
            if start < 0:
                # A magic number may straddle two reads
                keep = len(MAGIC_BYTES) - 1
                if len(self._buf) > keep:
                    self._skip(len(self._buf) - keep)
                break
            if start:
                logger.debug("skipping %d bytes before magic", start)
                self._skip(start)

            if len(self._buf) < PACKET_LENGTH_OFFSET + 2:
                break
            pkt_len = struct.unpack_from("<H", self._buf, PACKET_LENGTH_OFFSET)[0]
            if pkt_len < FIXED_SIZE or pkt_len > self.max_packet_size:
                logger.warning("implausible packet length %d, resyncing", pkt_len)
                self._skip(1)
                continue
            if len(self._buf) < pkt_len:
                break

            result = parse_packet(bytes(self._buf[:pkt_len]), strict=self.strict)
            if result.ok:
                self.packets += 1
                del self._buf[:pkt_len]
            else:
                # A truncated packet's length may cover the next packet's start
                self.errors += 1
                logger.warning("rejected packet: %s, resyncing", result.error)
                self._skip(1)
            results.append(result)

        return results

    def _skip(self, n: int) -> None:
        self.skipped_bytes += n
        del self._buf[:n]

    def reset(self):
        """Clear internal buffer."""
        self._buf.clear()
