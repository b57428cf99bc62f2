import socket
import threading

import pytest

from camframe.camera_link import (
    CommandServer,
    LinkConfig,
    main,
    send_image,
    send_string,
)
from camframe.formats import Frame, PixFormat


@pytest.fixture
def receiver():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


def _config(receiver, **kwargs):
    return LinkConfig(host="127.0.0.1", target_port=receiver.getsockname()[1], **kwargs)


def _collect(receiver):
    chunks = []
    while True:
        data, _ = receiver.recvfrom(65535)
        chunks.append(data)
        if data == b"successful":
            return chunks


def test_send_string_delivers_datagram(receiver):
    sent = send_string("hello esp", _config(receiver))
    data, _ = receiver.recvfrom(1024)
    assert data == b"hello esp"
    assert sent == len(data)


def test_send_image_chunks_and_end_marker(receiver):
    payload = bytes(range(256)) * 10
    frame = Frame(payload, 4, 4, PixFormat.JPEG)
    sent = send_image(frame, _config(receiver, packet_size=1024))
    chunks = _collect(receiver)
    assert chunks[-1] == b"successful"
    assert b"".join(chunks[:-1]) == payload
    assert all(len(c) <= 1024 for c in chunks[:-1])
    assert sent == len(payload)


def test_send_image_small_packets(receiver):
    payload = b"abcdefghij"
    send_image(Frame(payload, 0, 0, PixFormat.JPEG), _config(receiver, packet_size=4))
    chunks = _collect(receiver)
    assert chunks[:-1] == [b"abcd", b"efgh", b"ij"]


def test_send_empty_image_only_end_marker(receiver):
    sent = send_image(Frame(b"", 0, 0, PixFormat.JPEG), _config(receiver))
    assert _collect(receiver) == [b"successful"]
    assert sent == 0


def test_handle_capture_command_sends_frame(receiver):
    frame = Frame(b"\xff\xd8data\xff\xd9", 2, 2, PixFormat.JPEG)
    server = CommandServer(lambda: frame, _config(receiver))
    assert server.handle(b"capture image", ("127.0.0.1", 1)) is True
    chunks = _collect(receiver)
    assert b"".join(chunks[:-1]) == frame.buf


def test_handle_stops_at_nul(receiver):
    frame = Frame(b"xyz", 1, 1, PixFormat.JPEG)
    server = CommandServer(lambda: frame, _config(receiver))
    assert server.handle(b"capture image\x00trailing") is True
    assert _collect(receiver)[0] == b"xyz"


def test_handle_other_payload_ignored(receiver):
    calls = []

    def capture():
        calls.append(1)
        return Frame(b"x", 1, 1, PixFormat.JPEG)

    server = CommandServer(capture, _config(receiver))
    assert server.handle(b"capture images") is False
    assert server.handle(b"hello") is False
    assert calls == []


def test_handle_no_frame_sends_nothing(receiver):
    receiver.settimeout(0.2)
    server = CommandServer(lambda: None, _config(receiver))
    assert server.handle(b"capture image") is False
    with pytest.raises(socket.timeout):
        receiver.recvfrom(1024)


def test_serve_forever_round_trip(receiver):
    frame = Frame(b"0123456789" * 300, 5, 5, PixFormat.JPEG)
    config = _config(receiver, listen_host="127.0.0.1", listen_port=0, timeout=0.1)
    server = CommandServer(lambda: frame, config)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        assert server.bound.wait(2.0)
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as client:
            client.sendto(b"capture image", server.server_address)
        chunks = _collect(receiver)
    finally:
        server.stop_event.set()
        thread.join(2.0)
    assert b"".join(chunks[:-1]) == frame.buf
    assert not thread.is_alive()


@pytest.mark.parametrize(
    "kwargs",
    [{"packet_size": 0}, {"recv_size": 0}, {"timeout": 0}, {"target_port": 70000}],
)
def test_link_config_rejects_bad_values(kwargs):
    with pytest.raises(ValueError):
        LinkConfig(**kwargs)


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit) as info:
        main(["image.jpg", "--listen-port", "notanumber"])
    assert info.value.code == 2