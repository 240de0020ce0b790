"""radarcsi - CSI/radar telemetry packet decoder and tooling."""

from .protocol import MAGIC, FIXED_SIZE, RoomId, BuildingId, SensorGroup
from .models import RadarTarget, CsiSample, RadarTargets, RadarPacket, format_mac, parse_mac
from .errors import (
    ErrorKind, ErrorCode, Violation, PacketError, StructuralError,
    SemanticError, ConsistencyWarning, Result,
)
from .validator import validate_buffer
from .semantic import check_packet, validate_semantics
from .decoder import decode_packet, parse_packet, PacketStream
from .encoder import encode_packet, encode_record, make_target, random_csi

__version__ = "0.1.0"

__all__ = [
    "MAGIC", "FIXED_SIZE", "RoomId", "BuildingId", "SensorGroup",
    "RadarTarget", "CsiSample", "RadarTargets", "RadarPacket",
    "format_mac", "parse_mac",
    "ErrorKind", "ErrorCode", "Violation", "PacketError", "StructuralError",
    "SemanticError", "ConsistencyWarning", "Result",
    "validate_buffer", "check_packet", "validate_semantics",
    "decode_packet", "parse_packet", "PacketStream",
    "encode_packet", "encode_record", "make_target", "random_csi",
]
