"""Wire format constants for CSI/radar telemetry packets.

Packet layout (little-endian, packed):

  [header(36)][sensor group 0: target(13) x 3][sensor group 1: target(13) x 3]
  [csi sample(2) x csi_len]

The fixed part is 114 bytes; every packet is ``114 + 2 * csi_len`` bytes.
"""

from __future__ import annotations

import struct
from enum import IntEnum

# Wire format constants (must match csi_protocol.h)
MAGIC = 0xDEADBEEF
MAGIC_BYTES = struct.pack("<I", MAGIC)
PROTOCOL_VERSION = 1

# magic, version, reserved1, packet_length, rx_mac, room_id, building_id,
# seq_number, csi_counter, timestamp_ms, rssi, channel, csi_len
HEADER_FMT = "<IBBH6sBBIIQbBH"
HEADER_SIZE = struct.calcsize(HEADER_FMT)  # 36

# x_mm, y_mm, dist_mm, speed_cms, angle_deg_x10, track_id, valid
TARGET_FMT = "<hhHhhHB"
TARGET_SIZE = struct.calcsize(TARGET_FMT)  # 13

TARGETS_PER_GROUP = 3
SENSOR_GROUPS = 2
GROUP_SIZE = TARGETS_PER_GROUP * TARGET_SIZE  # 39

FIXED_SIZE = HEADER_SIZE + SENSOR_GROUPS * GROUP_SIZE  # 114

CSI_SAMPLE_SIZE = 2

# Field offsets used by the pre-parse checks
MAGIC_OFFSET = 0
PACKET_LENGTH_OFFSET = 6

# The flag byte is exactly 1 for a tracked target; anything else is "not valid"
TARGET_VALID = 1

MAC_LEN = 6


def expected_length(csi_len: int) -> int:
    """Total packet size for a given number of CSI samples."""
    return FIXED_SIZE + CSI_SAMPLE_SIZE * csi_len


class SensorGroup(IntEnum):
    """Radar sensor slots, in wire order."""
    LD2450 = 0
    RD03D = 1


class RoomId(IntEnum):
    BEDROOM = 0
    LIVING_ROOM = 1
    KITCHEN = 2
    BATHROOM = 3
    OFFICE = 4
    HALLWAY = 5
    GARAGE = 6
    BASEMENT = 7
    DINING_ROOM = 8
    GUEST_ROOM = 9
    BALCONY = 10
    LAUNDRY = 11
    STORAGE = 12
    ENTRANCE = 13
    PATIO = 14
    UNKNOWN = 255


class BuildingId(IntEnum):
    MAIN_OFFICE = 0
    BUILDING_A = 1
    BUILDING_B = 2
    BUILDING_C = 3
    WAREHOUSE = 4
    LAB = 5
    FACTORY = 6
    RESIDENCE_1 = 7
    RESIDENCE_2 = 8
    ANNEX = 9
    UNKNOWN = 255


def lookup_enum(enum_cls: type[IntEnum], value: int) -> IntEnum | int:
    """Map a raw byte to an enum member, or return it unchanged if unknown."""
    try:
        return enum_cls(value)
    except ValueError:
        return value
