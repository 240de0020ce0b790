#!/usr/bin/env python3
"""Listen for receiver packets on UDP and print the tracked targets.

Start the simulator first:
    python examples/device_sim.py

Then in another terminal:
    python examples/udp_listener.py
"""

from radarcsi.decoder import parse_packet
from radarcsi.transport import DEFAULT_PORT, UDPTransport

transport = UDPTransport("0.0.0.0", DEFAULT_PORT)

try:
    while True:
        data = transport.read()
        if not data:
            continue
        result = parse_packet(data)
        if not result.ok:
            print(f"rejected: {result.error}")
            continue
        pkt = result.value
        for name, group in (("LD2450", pkt.radar_targets.ld2450),
                            ("RD03D", pkt.radar_targets.rd03d)):
            for t in group:
                if t.valid:
                    print(f"seq={pkt.seq_number} {name} track={t.track_id} "
                          f"x={t.x_mm} y={t.y_mm} angle={t.angle_deg:.1f}")
except KeyboardInterrupt:
    pass
finally:
    transport.close()
