#!/usr/bin/env python3
"""Simulate a receiver board pushing CSI/radar packets over UDP.

Sends one packet per datagram to localhost:5005 at 20 Hz.

Usage:
    python examples/device_sim.py

Then in another terminal:
    radarcsi live --udp 5005
"""

import math
import random
import time

from radarcsi.encoder import encode_packet, make_target, random_csi
from radarcsi.protocol import BuildingId, RoomId
from radarcsi.transport import DEFAULT_PORT, UDPSender

RX_MAC = "F0:F5:BD:01:56:01"
CSI_LEN = 128


def walker(t: float, radius_mm: float, period_s: float, track_id: int):
    """A person walking a circle in front of the sensor."""
    phase = 2 * math.pi * t / period_s
    x = radius_mm * math.cos(phase)
    y = 1500 + radius_mm * math.sin(phase)
    speed = 2 * math.pi * radius_mm / period_s / 10  # mm/s -> cm/s
    return make_target(
        x_mm=int(x), y_mm=int(y), dist_mm=int(math.hypot(x, y)),
        speed_cms=int(speed * math.sin(phase)),
        angle_deg=math.degrees(math.atan2(x, y)),
        track_id=track_id,
    )


def make_packet(t: float, seq: int) -> bytes:
    """Generate one packet at time t (seconds)."""
    first = walker(t, 800, 12.0, 1)
    second = walker(t + 3.0, 500, 9.0, 2)
    # The RD03D sees the same scene with a little jitter
    jittered = make_target(first.x_mm + random.randint(-40, 40),
                           first.y_mm + random.randint(-40, 40),
                           first.dist_mm, first.speed_cms, first.angle_deg, 7)
    return encode_packet(
        rx_mac=RX_MAC,
        room_id=RoomId.LIVING_ROOM,
        building_id=BuildingId.MAIN_OFFICE,
        seq_number=seq,
        csi_counter=seq,
        timestamp_ms=int(time.time() * 1000),
        rssi=-45 + random.randint(-3, 3),
        channel=6,
        radar_targets=[[first, second], [jittered]],
        csi_data=random_csi(CSI_LEN),
    )


def run(host: str = "127.0.0.1", port: int = DEFAULT_PORT, rate_hz: float = 20.0):
    sender = UDPSender(host, port)
    print(f"Sending to {host}:{port} at {rate_hz} Hz  (Ctrl-C to stop)")
    t0 = time.monotonic()
    seq = 0
    try:
        while True:
            sender.write(make_packet(time.monotonic() - t0, seq))
            seq += 1
            if seq % int(rate_hz) == 0:
                print(f"  sent {seq} packets")
            time.sleep(1.0 / rate_hz)
    except KeyboardInterrupt:
        print("\nShutting down.")
    finally:
        sender.close()


if __name__ == "__main__":
    run()
