"""UDP link that ships captured frames to a listening host on command."""

from __future__ import annotations

import argparse
import logging
import socket
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from camframe.formats import Frame, PixFormat

log = logging.getLogger("camframe.camera_link")

CAPTURE_COMMAND = b"capture image"
END_MARKER = b"successful"
FAIL_MARKER = b"fail"

Capture = Callable[[], "Frame | None"]


@dataclass(frozen=True)
class LinkConfig:
    """Addresses, ports and sizes used by the camera link."""

    host: str = "192.168.1.162"
    target_port: int = 3333
    listen_host: str = "0.0.0.0"
    listen_port: int = 12345
    packet_size: int = 1024
    recv_size: int = 127
    timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.packet_size < 1:
            raise ValueError("packet_size must be positive")
        if self.recv_size < 1:
            raise ValueError("recv_size must be positive")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        for name in ("target_port", "listen_port"):
            if not 0 <= getattr(self, name) <= 0xFFFF:
                raise ValueError(f"{name} must be in 0..65535")

    @property
    def target(self) -> tuple[str, int]:
        return (self.host, self.target_port)


def _udp_socket() -> socket.socket:
    return socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)


def send_string(message: str | bytes, config: LinkConfig | None = None) -> int:
    """Send one datagram holding ``message``; return the bytes sent."""
    config = config or LinkConfig()
    data = message.encode() if isinstance(message, str) else bytes(message)
    with _udp_socket() as sock:
        sent = sock.sendto(data, config.target)
    log.info("Message sent: %r", data)
    return sent


def send_image(frame: Frame, config: LinkConfig | None = None) -> int:
    """Send a frame in datagrams of at most ``packet_size`` bytes.

    A failed chunk is replaced by a ``fail`` datagram and sending stops.
    A ``successful`` datagram always ends the transfer. Returns the number
    of image bytes delivered.
    """
    config = config or LinkConfig()
    data = memoryview(frame.buf)
    offset = 0
    with _udp_socket() as sock:
        while offset < len(data):
            chunk = data[offset:offset + config.packet_size]
            try:
                sent = sock.sendto(chunk, config.target)
            except OSError as exc:
                log.error("Failed to send data: %s", exc)
                try:
                    sock.sendto(FAIL_MARKER, config.target)
                except OSError:
                    pass
                break
            log.debug("Sent %d bytes", sent)
            offset += sent
        sock.sendto(END_MARKER, config.target)
    log.info("Image sent width %d, height %d", frame.width, frame.height)
    return offset


class CommandServer:
    """Waits for UDP commands and answers ``capture image`` with a frame."""

    def __init__(self, capture: Capture, config: LinkConfig | None = None) -> None:
        self.capture = capture
        self.config = config or LinkConfig()
        self.stop_event = threading.Event()
        self.bound = threading.Event()
        self.server_address: tuple[str, int] | None = None

    def handle(self, payload: bytes, source: tuple[str, int] | None = None) -> bool:
        """Act on one datagram; return True when an image was sent."""
        text = bytes(payload).split(b"\0", 1)[0]
        log.info("Received %d bytes from %s: %r", len(payload), source, text)
        if text != CAPTURE_COMMAND:
            return False
        frame = self.capture()
        if frame is None:
            log.error("Capture returned no frame")
            return False
        send_image(frame, self.config)
        return True

    def serve_forever(self) -> None:
        """Receive commands until ``stop_event`` is set, rebinding after errors."""
        self.stop_event.clear()
        while not self.stop_event.is_set():
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.settimeout(self.config.timeout)
                sock.bind((self.config.listen_host, self.config.listen_port))
                self.server_address = sock.getsockname()
                self.bound.set()
                log.info("Socket bound, port %d", self.server_address[1])
                try:
                    self._receive_loop(sock)
                except OSError as exc:
                    log.error("Socket error, restarting: %s", exc)
        self.bound.clear()

    def _receive_loop(self, sock: socket.socket) -> None:
        while not self.stop_event.is_set():
            try:
                payload, source = sock.recvfrom(self.config.recv_size)
            except socket.timeout:
                log.info("Did not receive data")
                continue
            if payload:
                self.handle(payload, source)


def _file_capture(path: Path) -> Capture:
    def capture() -> Frame | None:
        try:
            return Frame(path.read_bytes(), 0, 0, PixFormat.JPEG)
        except OSError as exc:
            log.error("Cannot read %s: %s", path, exc)
            return None

    return capture


def main(argv: list[str] | None = None) -> int:
    """Serve capture commands, answering with the contents of an image file."""
    parser = argparse.ArgumentParser(prog="camframe-link", description=main.__doc__)
    defaults = LinkConfig()
    parser.add_argument("image", type=Path, help="JPEG file sent for each capture")
    parser.add_argument("--host", default=defaults.host)
    parser.add_argument("--port", type=int, default=defaults.target_port)
    parser.add_argument("--listen-host", default=defaults.listen_host)
    parser.add_argument("--listen-port", type=int, default=defaults.listen_port)
    parser.add_argument("--timeout", type=float, default=defaults.timeout)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    config = LinkConfig(
        host=args.host,
        target_port=args.port,
        listen_host=args.listen_host,
        listen_port=args.listen_port,
        timeout=args.timeout,
    )
    server = CommandServer(_file_capture(args.image), config)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        server.stop_event.set()
    return 0