"""Field-level checks on decoded packets, independent of byte layout.

Unlike validate_buffer(), which stops at the first structural problem,
these checks are exhaustive: every violated field is reported so the
caller can log one complete diagnostic.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Mapping

from pydantic import (
    AfterValidator, BaseModel, ConfigDict, Field, Strict, ValidationError, field_validator,
)

from .errors import Result, SemanticError, Violation
from .models import RadarPacket
from .protocol import MAGIC, SENSOR_GROUPS, TARGETS_PER_GROUP

I8 = Annotated[int, Strict(), Field(ge=-0x80, le=0x7F)]
U8 = Annotated[int, Strict(), Field(ge=0, le=0xFF)]
I16 = Annotated[int, Strict(), Field(ge=-0x8000, le=0x7FFF)]
U16 = Annotated[int, Strict(), Field(ge=0, le=0xFFFF)]


def _fits_u64(v: int) -> int:
    if v > 0xFFFF_FFFF_FFFF_FFFF:
        raise ValueError("must fit in 64 bits")
    return v


U64 = Annotated[int, Strict(), Field(ge=0), AfterValidator(_fits_u64)]

MAC_PATTERN = r"^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$"


class TargetSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    x_mm: I16
    y_mm: I16
    dist_mm: U16
    speed_cms: I16
    angle_deg_x10: I16
    track_id: U16
    valid: Annotated[bool, Strict()]


TargetGroup = Annotated[list[TargetSchema],
                        Field(min_length=TARGETS_PER_GROUP, max_length=TARGETS_PER_GROUP)]


class PacketSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    magic: Annotated[int, Strict()]
    version: U8
    reserved1: U8
    packet_length: Annotated[int, Strict(), Field(gt=0, le=0xFFFF)]
    rx_mac: Annotated[str, Strict(), Field(pattern=MAC_PATTERN)]
    room_id: U8
    building_id: U8
    seq_number: U64
    csi_counter: U64
    timestamp_ms: U64
    rssi: I8
    channel: U8
    csi_len: Annotated[int, Strict(), Field(ge=0)]
    radar_targets: Annotated[list[dict[Literal["0", "1"], TargetGroup]],
                             Field(min_length=SENSOR_GROUPS, max_length=SENSOR_GROUPS)]
    csi_data: list[tuple[I8, I8]]

    @field_validator("magic")
    @classmethod
    def _check_magic(cls, v: int) -> int:
        if v != MAGIC:
            raise ValueError(f"must be 0x{MAGIC:X}, got 0x{v:X}")
        return v


def _loc(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(p) for p in loc) or "packet"


def _cross_field(record: Mapping[str, Any]) -> list[Violation]:
    """Checks that relate fields to each other."""
    violations: list[Violation] = []
    csi_len = record.get("csi_len")
    csi_data = record.get("csi_data")
    if (isinstance(csi_len, int) and not isinstance(csi_len, bool)
            and isinstance(csi_data, (list, tuple)) and len(csi_data) != csi_len):
        violations.append(Violation(
            "csi_data", f"holds {len(csi_data)} samples, csi_len is {csi_len}"))

    groups = record.get("radar_targets")
    if isinstance(groups, (list, tuple)):
        for idx, group in enumerate(groups):
            if isinstance(group, Mapping) and list(group) != [str(idx)]:
                violations.append(Violation(
                    f"radar_targets.{idx}",
                    f"expected sensor group key '{idx}', got {sorted(group)}"))
    return violations


def check_packet(packet: RadarPacket | Mapping[str, Any]) -> Result:
    """Check every field of a packet (or its to_dict() record).

    Returns a successful Result carrying the packet, or a failed one whose
    SemanticError lists all violations.
    """
    record = packet.to_dict() if isinstance(packet, RadarPacket) else dict(packet)

    violations: list[Violation] = []
    try:
        PacketSchema.model_validate(record)
    except ValidationError as e:
        violations.extend(Violation(_loc(err["loc"]), err["msg"]) for err in e.errors())
    violations.extend(_cross_field(record))

    if violations:
        return Result.failure(SemanticError(violations))
    return Result.success(packet)


def validate_semantics(packet: RadarPacket | Mapping[str, Any]) -> RadarPacket | Mapping[str, Any]:
    """Raising variant of check_packet()."""
    return check_packet(packet).unwrap()
