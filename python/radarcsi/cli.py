"""radarcsi command-line tool."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from enum import IntEnum
from pathlib import Path

from .decoder import PacketStream, decode_packet, parse_packet
from .encoder import encode_packet, make_target, random_csi
from .errors import PacketError, Result
from .models import RadarPacket
from .protocol import BuildingId, RoomId
from .semantic import check_packet
from .transport import open_transport
from .validator import validate_buffer

logger = logging.getLogger(__name__)


def _label(value: IntEnum | int) -> str:
    return value.name if isinstance(value, IntEnum) else str(value)


def _format_packet(packet: RadarPacket) -> str:
    ts_s = packet.timestamp_ms / 1000
    active = sum(t.valid for t in packet.radar_targets.all())
    return (f"[{ts_s:14.3f}] {packet.rx_mac} "
            f"room={_label(packet.room)} building={_label(packet.building)} "
            f"seq={packet.seq_number} rssi={packet.rssi} ch={packet.channel} "
            f"csi={packet.csi_len} targets={active}/6")


def _result_json(name: str, result: Result) -> dict:
    out: dict = {"source": name, "ok": result.ok}
    if result.ok:
        out["packet"] = result.value.to_dict()
    else:
        out["error"] = result.error.to_dict()
    if result.warnings:
        out["warnings"] = [w.message for w in result.warnings]
    return out


def cmd_decode(args: argparse.Namespace) -> int:
    """Validate and decode packet files."""
    status = 0
    docs = []
    for path in args.files:
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            print(f"{path}: {e}", file=sys.stderr)
            status = 1
            continue

        result = parse_packet(data, strict=not args.lenient)
        if not result.ok:
            status = 1
        if args.json:
            docs.append(_result_json(path, result))
        elif result.ok:
            print(f"{path}: {_format_packet(result.value)}")
        else:
            print(f"{path}: {result.error.kind.value} error "
                  f"[{result.error.code.value}] {result.error}", file=sys.stderr)

    if args.json:
        print(json.dumps(docs if len(docs) != 1 else docs[0], indent=2))
    return status


def cmd_info(args: argparse.Namespace) -> int:
    """Print every header field and the radar target table of one packet."""
    data = Path(args.file).read_bytes()
    checked = validate_buffer(data)
    if not checked.ok:
        print(f"Error: {checked.error}", file=sys.stderr)
        return 1
    try:
        packet = decode_packet(data, strict=False)
    except PacketError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"File:          {args.file}")
    print(f"Size:          {len(data):,} bytes")
    print(f"Magic:         0x{packet.magic:08X}")
    print(f"Version:       {packet.version}")
    print(f"Packet length: {packet.packet_length}")
    print(f"RX MAC:        {packet.rx_mac}")
    print(f"Room:          {packet.room_id} ({_label(packet.room)})")
    print(f"Building:      {packet.building_id} ({_label(packet.building)})")
    print(f"Sequence:      {packet.seq_number}")
    print(f"CSI counter:   {packet.csi_counter}")
    print(f"Timestamp:     {packet.timestamp_ms} ms")
    print(f"RSSI:          {packet.rssi} dBm")
    print(f"Channel:       {packet.channel}")
    print(f"CSI samples:   {packet.csi_len}")
    if packet.csi_len:
        amp = packet.amplitude()
        print(f"CSI amplitude: mean={amp.mean():.2f} max={amp.max():.2f}")

    print(f"\n  {'Sensor':<7s} {'#':>1s}  {'x_mm':>6s} {'y_mm':>6s} {'dist':>6s} "
          f"{'speed':>6s} {'angle':>6s} {'track':>5s}  valid")
    for name, group in (("LD2450", packet.radar_targets.ld2450),
                        ("RD03D", packet.radar_targets.rd03d)):
        for i, t in enumerate(group):
            print(f"  {name:<7s} {i:1d}  {t.x_mm:6d} {t.y_mm:6d} {t.dist_mm:6d} "
                  f"{t.speed_cms:6d} {t.angle_deg:6.1f} {t.track_id:5d}  {t.valid}")

    semantic = check_packet(packet)
    if not semantic.ok:
        print("\nField violations:")
        for v in semantic.error.violations:
            print(f"  {v}")
        return 1
    return 0


def cmd_gen(args: argparse.Namespace) -> int:
    """Write a fixture packet like the receiver firmware would send."""
    data = encode_packet(
        rx_mac=args.mac,
        room_id=args.room,
        building_id=args.building,
        seq_number=args.seq,
        csi_counter=args.csi_counter,
        timestamp_ms=args.timestamp if args.timestamp is not None
        else int(time.time() * 1000),
        rssi=args.rssi,
        channel=args.channel,
        radar_targets=[
            [make_target(1200, 800, 1442, 15, 33.7, 1),
             make_target(-500, 1500, 1581, -8, -18.4, 2)],
            [make_target(900, 600, 1081, 12, 28.8, 3)],
        ],
        csi_data=random_csi(args.csi_len, seed=args.seed),
    )
    Path(args.output).write_bytes(data)
    print(f"Generated: {args.output} ({len(data)} bytes)")
    return 0


def cmd_live(args: argparse.Namespace) -> int:
    """Decode packets from a live link."""
    if args.udp:
        transport = open_transport("udp", args.udp)
    elif args.tcp:
        transport = open_transport("tcp", args.tcp)
    elif args.serial:
        transport = open_transport("serial", args.serial, baudrate=args.baud)
    else:
        print("Error: specify --udp, --tcp, or --serial", file=sys.stderr)
        return 1

    stream = PacketStream(strict=not args.lenient)
    received = 0
    try:
        while args.count is None or received < args.count:
            try:
                data = transport.read(65536)
            except ConnectionError as e:
                logger.info("link closed: %s", e)
                break
            if not data:
                time.sleep(0.01)
                continue
            if transport.datagram:
                results = [parse_packet(data, strict=not args.lenient)]
            else:
                results = stream.feed(data)
            for result in results:
                received += 1
                if result.ok:
                    print(_format_packet(result.value), flush=True)
                else:
                    logger.warning("rejected packet: [%s] %s",
                                   result.error.code.value, result.error)
    except KeyboardInterrupt:
        pass
    finally:
        transport.close()
    return 0


def _enum_or_int(enum_cls: type[IntEnum]):
    def parse(text: str) -> int:
        try:
            return int(text, 0)
        except ValueError:
            try:
                return enum_cls[text.upper()].value
            except KeyError:
                raise argparse.ArgumentTypeError(
                    f"unknown {enum_cls.__name__}: {text}") from None
    return parse


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="radarcsi",
                                     description="CSI/radar packet tool")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Errors only")
    sub = parser.add_subparsers(dest="command")

    # decode
    p_decode = sub.add_parser("decode", help="Validate and decode packet files")
    p_decode.add_argument("files", nargs="+", help="Path(s) to .bin packets")
    p_decode.add_argument("--json", action="store_true", help="Emit JSON records")
    p_decode.add_argument("--lenient", action="store_true",
                          help="Accept trailing bytes after the CSI data")

    # info
    p_info = sub.add_parser("info", help="Show every field of one packet")
    p_info.add_argument("file", help="Path to .bin packet")

    # gen
    p_gen = sub.add_parser("gen", help="Generate a sample packet")
    p_gen.add_argument("output", help="Output .bin path")
    p_gen.add_argument("--csi-len", type=int, default=128)
    p_gen.add_argument("--seq", type=int, default=1)
    p_gen.add_argument("--csi-counter", type=int, default=1)
    p_gen.add_argument("--room", type=_enum_or_int(RoomId), default=RoomId.LIVING_ROOM.value)
    p_gen.add_argument("--building", type=_enum_or_int(BuildingId),
                       default=BuildingId.MAIN_OFFICE.value)
    p_gen.add_argument("--mac", default="F0:F5:BD:01:56:01")
    p_gen.add_argument("--rssi", type=int, default=-45)
    p_gen.add_argument("--channel", type=int, default=6)
    p_gen.add_argument("--timestamp", type=int, help="Epoch ms (default: now)")
    p_gen.add_argument("--seed", type=int, help="Seed for the CSI samples")

    # live
    p_live = sub.add_parser("live", help="Live decode from transport")
    p_live.add_argument("--udp", help="Local [HOST:]PORT to listen on")
    p_live.add_argument("--tcp", help="TCP host:port to connect to")
    p_live.add_argument("--serial", help="Serial port (e.g. /dev/ttyUSB0)")
    p_live.add_argument("--baud", type=int, default=921600, help="Baud rate")
    p_live.add_argument("--count", type=int, help="Stop after N packets")
    p_live.add_argument("--lenient", action="store_true",
                        help="Accept trailing bytes after the CSI data")

    args = parser.parse_args(argv)

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    logging.basicConfig(level=level,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "decode":
            return cmd_decode(args)
        if args.command == "info":
            return cmd_info(args)
        if args.command == "gen":
            return cmd_gen(args)
        if args.command == "live":
            return cmd_live(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
