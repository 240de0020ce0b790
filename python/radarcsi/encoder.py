"""Build conformant packets from field values.

Mirrors what the receiver firmware emits; used for fixtures, the ``gen``
CLI command and the simulated device in ``examples/``.
"""

from __future__ import annotations

import struct
from typing import Any, Mapping, Sequence

import numpy as np

from .models import RadarPacket, RadarTarget, RadarTargets, parse_mac
from .protocol import (
    CSI_SAMPLE_SIZE, FIXED_SIZE, HEADER_FMT, MAC_LEN, MAGIC, PROTOCOL_VERSION,
    SENSOR_GROUPS, TARGET_FMT, TARGET_VALID, TARGETS_PER_GROUP, expected_length,
)

# Largest csi_len whose total size still fits the 16-bit packet_length field
MAX_ENCODABLE_CSI_LEN = (0xFFFF - FIXED_SIZE) // CSI_SAMPLE_SIZE

TargetLike = RadarTarget | Mapping[str, Any]


def make_target(x_mm: int = 0, y_mm: int = 0, dist_mm: int = 0,
                speed_cms: int = 0, angle_deg: float = 0.0, track_id: int = 0,
                valid: bool = True) -> RadarTarget:
    """Build a target from logical values (angle in degrees)."""
    return RadarTarget.from_angle(x_mm, y_mm, dist_mm, speed_cms, angle_deg,
                                  track_id, valid)


def _coerce_target(t: TargetLike | None) -> RadarTarget:
    if t is None:
        return RadarTarget.EMPTY
    if isinstance(t, RadarTarget):
        return t
    if "angle_deg_x10" in t:
        angle_x10 = int(t["angle_deg_x10"])
    else:
        angle_x10 = round(float(t.get("angle_deg", 0.0)) * 10)
    return RadarTarget(
        int(t.get("x_mm", 0)), int(t.get("y_mm", 0)), int(t.get("dist_mm", 0)),
        int(t.get("speed_cms", 0)), angle_x10, int(t.get("track_id", 0)),
        bool(t.get("valid", False)),
    )


def _coerce_group(group: Sequence[TargetLike | None] | None) -> tuple[RadarTarget, ...]:
    group = list(group or [])
    if len(group) > TARGETS_PER_GROUP:
        raise ValueError(
            f"a sensor group holds at most {TARGETS_PER_GROUP} targets, got {len(group)}")
    group += [None] * (TARGETS_PER_GROUP - len(group))
    return tuple(_coerce_target(t) for t in group)


def _coerce_targets(targets: RadarTargets | Sequence[Any] | None) -> RadarTargets:
    if isinstance(targets, RadarTargets):
        return targets
    groups = list(targets or [])
    if len(groups) > SENSOR_GROUPS:
        raise ValueError(f"expected {SENSOR_GROUPS} sensor groups, got {len(groups)}")
    groups += [None] * (SENSOR_GROUPS - len(groups))
    return RadarTargets(_coerce_group(groups[0]), _coerce_group(groups[1]))


def _csi_bytes(csi_data: Any) -> tuple[int, bytes]:
    try:
        arr = np.asarray(csi_data if csi_data is not None else [])
    except OverflowError as e:
        raise ValueError(f"CSI component out of range: {e}") from e
    if arr.size == 0:
        return 0, b""
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"csi_data must be (I, Q) pairs, got shape {arr.shape}")
    if arr.dtype.kind not in "iu":
        raise ValueError(f"CSI components must be integers, got {arr.dtype}")
    if arr.min() < -128 or arr.max() > 127:
        raise ValueError("CSI components must be in [-128, 127]")
    return len(arr), arr.astype(np.int8).tobytes()


def _mac_bytes(rx_mac: str | bytes | Sequence[int]) -> bytes:
    raw = parse_mac(rx_mac) if isinstance(rx_mac, str) else bytes(rx_mac)
    if len(raw) != MAC_LEN:
        raise ValueError(f"rx_mac must be {MAC_LEN} bytes, got {len(raw)}")
    return raw


def encode_packet(*, version: int = PROTOCOL_VERSION, reserved1: int = 0,
                  rx_mac: str | bytes | Sequence[int] = bytes(MAC_LEN),
                  room_id: int = 0, building_id: int = 0,
                  seq_number: int = 0, csi_counter: int = 0,
                  timestamp_ms: int = 0, rssi: int = 0, channel: int = 0,
                  radar_targets: RadarTargets | Sequence[Any] | None = None,
                  csi_data: Any = None, magic: int = MAGIC) -> bytes:
    """Encode one packet.  ``packet_length`` and ``csi_len`` are derived.

    Target slots not supplied are padded with RadarTarget.EMPTY.
    Out-of-range values raise ValueError instead of wrapping.
    """
    csi_len, csi = _csi_bytes(csi_data)
    if csi_len > MAX_ENCODABLE_CSI_LEN:
        raise ValueError(
            f"csi_len {csi_len} does not fit a 16-bit packet_length "
            f"(max {MAX_ENCODABLE_CSI_LEN})")
    targets = _coerce_targets(radar_targets)

    buf = bytearray()
    try:
        buf += struct.pack(
            HEADER_FMT, magic, version, reserved1, expected_length(csi_len),
            _mac_bytes(rx_mac), room_id, building_id, seq_number, csi_counter,
            timestamp_ms, rssi, channel, csi_len,
        )
        for t in targets.all():
            buf += struct.pack(
                TARGET_FMT, t.x_mm, t.y_mm, t.dist_mm, t.speed_cms,
                t.angle_deg_x10, t.track_id, TARGET_VALID if t.valid else 0,
            )
    except struct.error as e:
        raise ValueError(f"field out of range: {e}") from e

    buf += csi
    return bytes(buf)


def encode_record(packet: RadarPacket) -> bytes:
    """Encode a decoded packet back to its wire bytes."""
    return encode_packet(
        magic=packet.magic,
        version=packet.version,
        reserved1=packet.reserved1,
        rx_mac=packet.rx_mac,
        room_id=packet.room_id,
        building_id=packet.building_id,
        seq_number=packet.seq_number,
        csi_counter=packet.csi_counter,
        timestamp_ms=packet.timestamp_ms,
        rssi=packet.rssi,
        channel=packet.channel,
        radar_targets=packet.radar_targets,
        csi_data=packet.csi_data,
    )


def random_csi(n: int, seed: int | None = None) -> np.ndarray:
    """Plausible-looking CSI for fixtures: I in [-30, 29], Q in [-20, 19]."""
    rng = np.random.default_rng(seed)
    out = np.empty((n, 2), dtype=np.int8)
    out[:, 0] = rng.integers(-30, 30, size=n)
    out[:, 1] = rng.integers(-20, 20, size=n)
    return out
