"""Test the stream decoder and transports.

Run from the repo root:
    python3 tests/test_stream.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "python"))

import struct
import tempfile

from radarcsi.protocol import MAGIC_BYTES
from radarcsi.errors import ErrorCode
from radarcsi.decoder import PacketStream, parse_packet
from radarcsi.encoder import encode_packet, random_csi
from radarcsi.transport import FileTransport, UDPSender, UDPTransport, open_transport


def make_packets(n):
    return [
        encode_packet(seq_number=i, csi_counter=100 + i, rssi=-40 - i,
                      csi_data=random_csi(8 * (i + 1), seed=i))
        for i in range(n)
    ]


def test_stream_back_to_back():
    """Concatenated packets fed in small fragments."""
    print("test_stream_back_to_back...", end="")

    packets = make_packets(3)
    stream_bytes = b"".join(packets)

    stream = PacketStream()
    results = []
    for i in range(0, len(stream_bytes), 7):
        results.extend(stream.feed(stream_bytes[i:i + 7]))

    assert len(results) == 3
    assert all(r.ok for r in results)
    assert [r.value.seq_number for r in results] == [0, 1, 2]
    assert [r.value.csi_len for r in results] == [8, 16, 24]
    assert stream.packets == 3
    assert stream.errors == 0
    assert stream.skipped_bytes == 0

    print(" OK")


def test_stream_resync_after_garbage():
    print("test_stream_resync_after_garbage...", end="")

    p0, p1 = make_packets(2)
    junk_a = b"\x00\x11\x22\x33\x44"
    junk_b = b"\xde\xad\xbe\xef\xaa"   # magic in the wrong byte order
    stream = PacketStream()

    results = stream.feed(junk_a + p0 + junk_b)
    assert len(results) == 1 and results[0].value.seq_number == 0
    results = stream.feed(p1)
    assert len(results) == 1 and results[0].value.seq_number == 1
    assert stream.skipped_bytes == len(junk_a) + len(junk_b)

    print(" OK")


def test_stream_magic_split_across_feeds():
    print("test_stream_magic_split_across_feeds...", end="")

    (pkt,) = make_packets(1)
    stream = PacketStream()
    assert stream.feed(b"\x55" * 10 + pkt[:2]) == []
    results = stream.feed(pkt[2:])
    assert len(results) == 1 and results[0].ok
    assert stream.skipped_bytes == 10

    print(" OK")


def test_stream_implausible_length():
    """A magic followed by a length below the header size is skipped."""
    print("test_stream_implausible_length...", end="")

    (pkt,) = make_packets(1)
    fake = MAGIC_BYTES + b"\x01\x00" + struct.pack("<H", 10)
    stream = PacketStream()
    results = stream.feed(fake + pkt)
    assert len(results) == 1 and results[0].ok
    assert stream.skipped_bytes == len(fake)

    small = PacketStream(max_packet_size=120)
    assert small.feed(pkt) == []
    assert small.skipped_bytes > 0

    print(" OK")


def test_stream_reports_rejected_packets():
    print("test_stream_reports_rejected_packets...", end="")

    # csi_len says 2 samples but packet_length covers 3
    buf = bytearray(encode_packet(csi_data=[(1, 1), (2, 2)]) + b"\x03\x03")
    struct.pack_into("<H", buf, 6, len(buf))
    (good,) = make_packets(1)

    stream = PacketStream()
    results = stream.feed(bytes(buf) + good)
    assert [r.ok for r in results] == [False, True]
    assert results[0].error.code == ErrorCode.CSI_LENGTH_MISMATCH
    assert stream.errors == 1 and stream.packets == 1

    lenient = PacketStream(strict=False)
    results = lenient.feed(bytes(buf))
    assert results[0].ok and len(results[0].warnings) == 1

    print(" OK")


def test_stream_resync_after_truncated_packet():
    """A packet cut short on the link must not swallow the next one."""
    print("test_stream_resync_after_truncated_packet...", end="")

    # Header claims 130 bytes but only 118 (two samples) made it through
    cut = bytearray(encode_packet(csi_data=[(1, 1), (2, 2)]))
    struct.pack_into("<H", cut, 6, 130)
    (good,) = make_packets(1)
    assert len(good) == 130

    stream = PacketStream()
    results = stream.feed(bytes(cut) + good)
    assert [r.ok for r in results] == [False, True]
    assert results[0].error.code == ErrorCode.CSI_LENGTH_MISMATCH
    assert results[1].value.seq_number == 0
    assert stream.errors == 1 and stream.packets == 1
    assert stream.skipped_bytes == len(cut)

    print(" OK")


def test_stream_reset():
    print("test_stream_reset...", end="")

    (pkt,) = make_packets(1)
    stream = PacketStream()
    assert stream.feed(pkt[:50]) == []
    stream.reset()
    assert stream.feed(pkt[50:]) == []
    assert len(stream.feed(pkt)) == 1

    print(" OK")


def test_udp_loopback():
    """One packet per datagram through the UDP transport."""
    print("test_udp_loopback...", end="")

    rx = UDPTransport("127.0.0.1", 0, timeout=2.0)
    host, port = rx.address
    tx = UDPSender(host, port)
    try:
        packets = make_packets(2)
        for pkt in packets:
            tx.write(pkt)
        got = [parse_packet(rx.read()) for _ in packets]
        assert [r.value.seq_number for r in got] == [0, 1]
        assert rx.datagram
        assert rx.last_sender is not None
    finally:
        tx.close()
        rx.close()

    print(" OK")


def test_file_replay():
    print("test_file_replay...", end="")

    packets = make_packets(4)
    with tempfile.NamedTemporaryFile(suffix=".bin", delete=False) as f:
        f.write(b"".join(packets))
        tmppath = f.name

    try:
        transport = open_transport("file", tmppath)
        assert not transport.datagram
        stream = PacketStream()
        results = []
        while True:
            chunk = transport.read(100)
            if not chunk:
                break
            results.extend(stream.feed(chunk))
        transport.close()
        assert [r.value.seq_number for r in results] == [0, 1, 2, 3]
        assert isinstance(transport, FileTransport)
    finally:
        os.unlink(tmppath)

    try:
        open_transport("carrier-pigeon", "x")
    except ValueError:
        pass
    else:
        raise AssertionError("unknown transport accepted")

    print(" OK")


if __name__ == "__main__":
    print("radarcsi stream tests")
    print("=====================\n")

    test_stream_back_to_back()
    test_stream_resync_after_garbage()
    test_stream_magic_split_across_feeds()
    test_stream_implausible_length()
    test_stream_reports_rejected_packets()
    test_stream_reset()
    test_udp_loopback()
    test_file_replay()

    print("\nAll tests passed.")
