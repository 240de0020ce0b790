"""Byte sources for live packet ingestion.

UDP carries exactly one packet per datagram.  Serial, TCP and file
sources are plain byte streams; feed them through decoder.PacketStream.
Sources are receive-only: ``read`` returns b"" when nothing arrived
within the timeout, and raises ConnectionError once the peer is gone.
"""

from __future__ import annotations

import socket
from typing import Protocol

DEFAULT_PORT = 5005
MAX_DATAGRAM = 0xFFFF


class Transport(Protocol):
    """Receive side of a link to one or more receivers."""

    datagram: bool

    def read(self, n: int) -> bytes: ...
    def close(self) -> None: ...


class SerialTransport:
    """UART link to a receiver board (requires pyserial)."""

    datagram = False

    def __init__(self, port: str, baudrate: int = 921600, timeout: float = 1.0):
        import serial
        self.port = port
        self._ser = serial.Serial(port, baudrate, timeout=timeout)

    def read(self, n: int) -> bytes:
        # pyserial returns short (possibly empty) reads on timeout
        return self._ser.read(min(n, self._ser.in_waiting or 1))

    def close(self) -> None:
        self._ser.close()


class UDPTransport:
    """Listens for packets pushed by receivers, one per datagram."""

    datagram = True

    def __init__(self, host: str = "0.0.0.0", port: int = DEFAULT_PORT,
                 timeout: float = 1.0):
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._sock.bind((host, port))
        self._sock.settimeout(timeout)
        self.last_sender: tuple[str, int] | None = None

    @property
    def address(self) -> tuple[str, int]:
        return self._sock.getsockname()

    def read(self, n: int = MAX_DATAGRAM) -> bytes:
        """Return one datagram, or b"" on timeout."""
        try:
            data, addr = self._sock.recvfrom(n)
        except socket.timeout:
            return b""
        self.last_sender = addr
        return data

    def close(self) -> None:
        self._sock.close()


class UDPSender:
    """Device side of UDPTransport, used by simulators and tests."""

    def __init__(self, host: str, port: int = DEFAULT_PORT):
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._remote = (host, port)

    def write(self, data: bytes) -> None:
        self._sock.sendto(data, self._remote)

    def close(self) -> None:
        self._sock.close()


class TCPTransport:
    """Connects to a receiver (or relay) that streams packets over TCP."""

    datagram = False

    def __init__(self, host: str, port: int, timeout: float = 1.0):
        self.peer = (host, port)
        self._sock = socket.create_connection(self.peer, timeout=timeout)

    def read(self, n: int) -> bytes:
        try:
            data = self._sock.recv(n)
        except socket.timeout:
            return b""
        if not data:
            raise ConnectionError(f"{self.peer[0]}:{self.peer[1]} closed the connection")
        return data

    def close(self) -> None:
        self._sock.close()


class FileTransport:
    """Replay a raw capture file (concatenated packets) as a stream.

    Returns b"" at end of file, like the other sources do on timeout.
    """

    datagram = False

    def __init__(self, path: str):
        self.path = path
        self._f = open(path, "rb")

    def read(self, n: int) -> bytes:
        return self._f.read(n)

    def close(self) -> None:
        self._f.close()


def _host_port(addr: str, default_host: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        return default_host, int(addr)
    return host or default_host, int(port)


def open_transport(kind: str, target: str, baudrate: int = 921600) -> Transport:
    """Open a transport from CLI-style arguments.

    ``kind`` is one of udp, tcp, serial, file.  For udp ``target`` is the
    local HOST:PORT (or PORT) to bind; for tcp it is the remote HOST:PORT.
    """
    if kind == "udp":
        return UDPTransport(*_host_port(target, "0.0.0.0"))
    if kind == "tcp":
        return TCPTransport(*_host_port(target, "localhost"))
    if kind == "serial":
        return SerialTransport(target, baudrate=baudrate)
    if kind == "file":
        return FileTransport(target)
    raise ValueError(f"unknown transport: {kind!r}")
