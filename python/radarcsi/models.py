"""Decoded packet records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, NamedTuple, Sequence

import numpy as np

from .protocol import (
    MAC_LEN, TARGETS_PER_GROUP, SensorGroup, RoomId, BuildingId, lookup_enum,
)

_MAC_RE = re.compile(r"^([0-9A-Fa-f]{2})([:-][0-9A-Fa-f]{2}){5}$")


def format_mac(raw: bytes | Sequence[int]) -> str:
    """Render 6 raw bytes as ``XX:XX:XX:XX:XX:XX`` (uppercase)."""
    raw = bytes(raw)
    if len(raw) != MAC_LEN:
        raise ValueError(f"MAC must be {MAC_LEN} bytes, got {len(raw)}")
    return ":".join(f"{b:02X}" for b in raw)


def parse_mac(text: str) -> bytes:
    """Inverse of format_mac.  Accepts either case and ':' or '-'."""
    if not _MAC_RE.match(text):
        raise ValueError(f"Malformed MAC address: {text!r}")
    return bytes(int(part, 16) for part in re.split(r"[:-]", text))


@dataclass(frozen=True)
class RadarTarget:
    x_mm: int
    y_mm: int
    dist_mm: int
    speed_cms: int
    angle_deg_x10: int
    track_id: int
    valid: bool

    EMPTY: ClassVar[RadarTarget]

    @property
    def angle_deg(self) -> float:
        return self.angle_deg_x10 / 10

    @classmethod
    def from_angle(cls, x_mm: int, y_mm: int, dist_mm: int, speed_cms: int,
                   angle_deg: float, track_id: int, valid: bool) -> RadarTarget:
        """Build a target from an angle in degrees (stored as tenths)."""
        return cls(x_mm, y_mm, dist_mm, speed_cms, round(angle_deg * 10),
                   track_id, bool(valid))

    def to_dict(self) -> dict[str, Any]:
        return {
            "x_mm": self.x_mm,
            "y_mm": self.y_mm,
            "dist_mm": self.dist_mm,
            "speed_cms": self.speed_cms,
            "angle_deg_x10": self.angle_deg_x10,
            "track_id": self.track_id,
            "valid": self.valid,
        }


RadarTarget.EMPTY = RadarTarget(0, 0, 0, 0, 0, 0, False)


class CsiSample(NamedTuple):
    """One complex channel-state sample."""
    i: int
    q: int


def _target_group(targets: Sequence[RadarTarget], name: str) -> tuple[RadarTarget, ...]:
    group = tuple(targets)
    if len(group) != TARGETS_PER_GROUP:
        raise ValueError(
            f"{name} must hold exactly {TARGETS_PER_GROUP} targets, got {len(group)}")
    return group


@dataclass(frozen=True)
class RadarTargets:
    """The two fixed radar sensor groups, each exactly 3 targets."""

    group0: tuple[RadarTarget, ...] = (RadarTarget.EMPTY,) * TARGETS_PER_GROUP
    group1: tuple[RadarTarget, ...] = (RadarTarget.EMPTY,) * TARGETS_PER_GROUP

    def __post_init__(self):
        object.__setattr__(self, "group0", _target_group(self.group0, "group0"))
        object.__setattr__(self, "group1", _target_group(self.group1, "group1"))

    @property
    def ld2450(self) -> tuple[RadarTarget, ...]:
        return self.group0

    @property
    def rd03d(self) -> tuple[RadarTarget, ...]:
        return self.group1

    def __getitem__(self, key: int | str) -> tuple[RadarTarget, ...]:
        if key in (SensorGroup.LD2450, "0"):
            return self.group0
        if key in (SensorGroup.RD03D, "1"):
            return self.group1
        raise KeyError(key)

    def __iter__(self):
        yield self.group0
        yield self.group1

    def all(self) -> list[RadarTarget]:
        """All six targets in wire order."""
        return [*self.group0, *self.group1]

    def to_list(self) -> list[dict[str, list[dict[str, Any]]]]:
        """Collaborator-facing shape: ``[{"0": [...]}, {"1": [...]}]``."""
        return [
            {"0": [t.to_dict() for t in self.group0]},
            {"1": [t.to_dict() for t in self.group1]},
        ]


@dataclass(frozen=True)
class RadarPacket:
    magic: int
    version: int
    reserved1: int
    packet_length: int
    rx_mac: str
    room_id: int
    building_id: int
    seq_number: int
    csi_counter: int
    timestamp_ms: int
    rssi: int
    channel: int
    csi_len: int
    radar_targets: RadarTargets = field(default_factory=RadarTargets)
    csi_data: tuple[CsiSample, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "csi_data",
                           tuple(CsiSample(int(i), int(q)) for i, q in self.csi_data))

    @property
    def room(self) -> RoomId | int:
        return lookup_enum(RoomId, self.room_id)

    @property
    def building(self) -> BuildingId | int:
        return lookup_enum(BuildingId, self.building_id)

    @property
    def timestamp(self) -> datetime:
        """``timestamp_ms`` as an aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=timezone.utc)

    # ------------------------------------------------------------------
    # numpy views of the CSI tail
    # ------------------------------------------------------------------

    def csi_array(self) -> np.ndarray:
        """CSI samples as an ``(csi_len, 2)`` int8 array, source order."""
        return np.array(self.csi_data, dtype=np.int8).reshape(-1, 2)

    def csi_complex(self) -> np.ndarray:
        """CSI samples as complex64 ``I + jQ``."""
        arr = self.csi_array().astype(np.float32)
        return (arr[:, 0] + 1j * arr[:, 1]).astype(np.complex64)

    def amplitude(self) -> np.ndarray:
        return np.abs(self.csi_complex())

    def phase(self) -> np.ndarray:
        return np.angle(self.csi_complex())

    def to_dict(self) -> dict[str, Any]:
        """Plain, JSON-serialisable record for persistence collaborators."""
        return {
            "magic": self.magic,
            "version": self.version,
            "reserved1": self.reserved1,
            "packet_length": self.packet_length,
            "rx_mac": self.rx_mac,
            "room_id": self.room_id,
            "building_id": self.building_id,
            "seq_number": self.seq_number,
            "csi_counter": self.csi_counter,
            "timestamp_ms": self.timestamp_ms,
            "rssi": self.rssi,
            "channel": self.channel,
            "csi_len": self.csi_len,
            "radar_targets": self.radar_targets.to_list(),
            "csi_data": [[s.i, s.q] for s in self.csi_data],
        }
